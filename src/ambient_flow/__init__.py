"""Ambient documentation flow runner and reliability soak harness."""

__version__ = "0.1.0"
