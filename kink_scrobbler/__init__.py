"""KINK radio stream → Last.fm now-playing and scrobble bridge."""

__version__ = "0.3.0"
