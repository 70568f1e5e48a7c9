"""Procurement document storage service.

Registers, stores, verifies and publishes binary documents for the
procurement platform.
"""

__version__ = "1.0.0"
