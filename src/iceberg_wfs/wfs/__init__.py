"""WFS HTTP surface: parameter resolution, decoration, serialization."""
