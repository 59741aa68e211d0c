"""Cluster aggregate lifecycle and provisioning inventory derivation."""

__version__ = "0.1.0"
