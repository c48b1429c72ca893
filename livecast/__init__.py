"""LiveCast: segment a live capture into an HLS playlist."""

__version__ = "0.1.0"
