"""photo-restyle: restyle user photos through an external image-edit provider."""

__version__ = "0.1.0"
