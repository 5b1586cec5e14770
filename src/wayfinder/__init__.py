"""Wayfinder: conditional dialogue graphs, player state and content validation."""

__version__ = "0.1.0"
