"""Cross-check a publisher's ads.txt against the files published by other domains."""

__version__ = "0.1.0"
