"""Buyback tracker: IT asset buyback records, status scans and spreadsheet sync."""

__version__ = "1.0.0"
