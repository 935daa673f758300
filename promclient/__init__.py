"""Prometheus-style metric primitives (counters, gauges, vectors) and a minimal HTTP client."""

__version__ = "0.1.0"