"""Legacy EHR record normalization, extraction and report pagination."""

__version__ = "0.1.0"
