"""Aggregation and indicator pipeline for V2EX community holder metrics."""

__version__ = "0.1.0"
