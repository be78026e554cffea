"""Skeet gateway — exposes database tools backed by pluggable connectors."""

__version__ = "0.2.0"
