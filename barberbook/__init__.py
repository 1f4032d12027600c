"""Barberbook: conflict-free appointment booking and provider subscription gating."""

__version__ = "0.1.0"
