"""StackingUp authentication and trust-level service."""

__version__ = "1.0.0"
