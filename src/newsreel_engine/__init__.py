"""Newsreel Engine - news story to narrated video pipeline."""

__version__ = "0.1.0"
