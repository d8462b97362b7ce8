"""scancrop - interactive perspective crop and document corner editing."""

__version__ = "0.1.0"
