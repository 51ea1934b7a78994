"""fleetledger: income/expense and client debt tracking for a small delivery business."""

from .app import create_app

__all__ = ["create_app"]
__version__ = "0.1.0"
