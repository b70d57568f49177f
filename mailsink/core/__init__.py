"""
Core Module

Core functionality including:
- Logging (structured logging)
- Metrics (Prometheus and connection stats)
- Exceptions (custom exceptions)
"""

__all__ = [
    "logging",
    "metrics",
    "exceptions",
]
