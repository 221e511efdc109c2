"""
Close Kernel - shared infrastructure for the month-end close schedule engines.

- Structured JSON logging with request-scoped context
- Typed exceptions with machine-readable codes
- Decimal rounding helpers used at every computation boundary
"""

__version__ = "0.1.0"
