"""Static file HTTP/1.1 server with directory listing and IP access control."""

__version__ = "0.1.0"
