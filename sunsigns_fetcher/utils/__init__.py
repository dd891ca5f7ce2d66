"""Utility helpers for SunSigns Fetcher."""
