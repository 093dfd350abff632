"""OGC WFS 2.0 GetFeature service over Apache Iceberg featuresets."""
