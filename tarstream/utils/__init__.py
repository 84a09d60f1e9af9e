"""Byte-level helpers."""
