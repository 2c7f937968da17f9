"""Relays GitHub review counters into Matrix room state."""

__version__ = "0.1.0"
