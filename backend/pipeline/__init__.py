"""
Video asset pipeline package.

This package contains the core components for producing marketing videos:
- Style templates and script parsing into scenes
- Per-step asset generation with provider fallbacks
- Error handling shared by the API and workers
"""

__version__ = "0.1.0"

from .templates import get_style_template, fill_template
from .error_handler import StudioError, ErrorCode, should_retry

__all__ = [
    "get_style_template",
    "fill_template",
    "StudioError",
    "ErrorCode",
    "should_retry",
]
