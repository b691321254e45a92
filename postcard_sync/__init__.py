"""postcard-sync – pull Google Photos albums into a folder and mail them out as postcards."""

__version__ = "0.1.0"
