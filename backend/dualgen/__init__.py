"""Dual-AI UI generation broker with subscription metering."""

__version__ = "0.1.0"
