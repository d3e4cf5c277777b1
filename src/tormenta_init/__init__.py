"""Tormenta init: process-one service supervisor."""

__version__ = "0.1.0"
