"""Live streaming building blocks: AMF, FLV, MPEG-TS, codec headers and configuration."""

__version__ = "0.1.0"