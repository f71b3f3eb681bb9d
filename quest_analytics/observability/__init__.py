"""
Observability module for quest-analytics.

This module provides:
- Metrics collection with Prometheus
"""

__all__ = ["metrics"]
