"""Periodic control testing and compliance attestation engine."""

__version__ = "0.1.0"
