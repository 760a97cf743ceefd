"""Plant-floor OEE and economic loss analytics."""

__version__ = "0.1.0"
