"""Cluster configuration, creation helpers and node networking logic."""

__version__ = "0.1.0"