"""Operational scripts runnable with ``python -m``."""
