"""Scam thread risk analyzer."""

__version__ = "0.4.0"
