"""WFS routes."""
