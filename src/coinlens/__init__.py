"""Analytical core of a crypto-asset recommendation tool."""

__version__ = "0.1.0"
