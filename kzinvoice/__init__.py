"""Invoice service for Kazakhstan with totals spelled out in Russian."""

__version__ = "0.1.0"
