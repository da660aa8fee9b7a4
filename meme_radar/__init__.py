"""Meme Radar - ticker mention and sentiment tracking for retail investing communities."""

__version__ = "0.1.0"
