"""PySide6 windows bound to surface controllers."""
