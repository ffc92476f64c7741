"""Page harvester — fetch, clean and package text from web pages."""

__version__ = "1.0.0"
