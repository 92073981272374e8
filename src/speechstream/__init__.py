"""Streaming-to-speech pipeline for incremental analysis results."""

__version__ = "0.1.0"
