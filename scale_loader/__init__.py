"""Round-based HTTP load driver with a live metrics endpoint."""

__version__ = "0.1.0"
