"""Control plane for a two-layer (HDFS + YARN) Hadoop cluster."""

__version__ = "0.3.0"
