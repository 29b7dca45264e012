"""Object detection decoding and spoken guidance for blind and low-vision users."""

__version__ = "0.1.0"
