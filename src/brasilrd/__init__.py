"""Torrent stream resolver for Real-Debrid backed Stremio add-ons."""

__version__ = "0.1.0"
