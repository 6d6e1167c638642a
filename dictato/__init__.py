"""Dictato - voice dictation with phonetic dictionary correction."""

__version__ = "0.1.0"
