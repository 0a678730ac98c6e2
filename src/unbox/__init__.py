"""Unpack archives of any supported format into exactly one new item."""

__version__ = "0.1.0"
