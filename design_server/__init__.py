"""Local preview server for HTML design pages with server-side includes."""

__version__ = "1.0.0"
