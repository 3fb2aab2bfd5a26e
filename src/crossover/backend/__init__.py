"""Reference preference owner running in the application process."""

from .owner import OverlayBackend
from .windows import MAX_SHADOW_WINDOWS, SHADOW_WINDOW_OFFSET, ShadowRegistry, WindowPlatform

__all__ = [
    "OverlayBackend",
    "ShadowRegistry",
    "WindowPlatform",
    "MAX_SHADOW_WINDOWS",
    "SHADOW_WINDOW_OFFSET",
]
