"""
Rendering of allowed links.
"""

from .pages import (
    Presentation,
    build_presentation,
    render_denied_page,
    render_expired_page,
    render_link_page,
    render_not_found_page,
)
from .selector import RenderMode, file_extension, select_render_mode

__all__ = [
    "Presentation",
    "RenderMode",
    "build_presentation",
    "file_extension",
    "render_denied_page",
    "render_expired_page",
    "render_link_page",
    "render_not_found_page",
    "select_render_mode",
]
