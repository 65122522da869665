"""streamclip — live capture-and-clip pipeline."""

__version__ = "0.1.0"
