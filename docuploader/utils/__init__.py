"""Utility helpers for docuploader."""
