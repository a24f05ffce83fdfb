"""Aggregates per-crate trait implementor contributions into one index."""

__version__ = "0.1.0"
