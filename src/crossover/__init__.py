"""CrossOver: a crosshair overlay whose windows stay in sync with one preference owner."""

__version__ = "0.4.0"

__all__ = ["__version__"]
