"""castdigest - Podcast transcript acquisition and summary generation."""

__version__ = "0.1.0"
