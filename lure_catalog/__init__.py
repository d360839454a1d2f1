"""Lure Catalog - ingestion pipeline for a normalized fishing lure catalog."""

__version__ = "0.1.0"
