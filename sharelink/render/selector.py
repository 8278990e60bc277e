"""
Presentation mode selection for allowed links.

The mode is a pure function of the stored file's extension.
"""

from enum import Enum
from typing import Any, Dict


class RenderMode(str, Enum):
    """How a link's file is presented."""

    IMAGE_PREVIEW = "image_preview"
    PDF_PREVIEW = "pdf_preview"
    OFFICE_PREVIEW = "office_preview"
    TEXT_INLINE = "text_inline"
    DOWNLOAD_ONLY = "download_only"


EXTENSION_MODES: Dict[str, RenderMode] = {
    **dict.fromkeys(("png", "jpg", "jpeg", "gif", "bmp", "webp"), RenderMode.IMAGE_PREVIEW),
    "pdf": RenderMode.PDF_PREVIEW,
    **dict.fromkeys(("doc", "docx"), RenderMode.OFFICE_PREVIEW),
    **dict.fromkeys(("txt", "md", "json", "js", "html", "css"), RenderMode.TEXT_INLINE),
}


def file_extension(blob_ref: Any) -> str:
    """
    Lowercase extension of the trailing path segment of a reference.

    Query strings and fragments are ignored. Returns "" when there is none.

    Examples:
        "/uploads/17-ab.PNG" -> "png"
        "https://cdn/x/report.pdf?sig=1" -> "pdf"
        "/uploads/README" -> ""
    """
    if not isinstance(blob_ref, str):
        return ""
    path = blob_ref.split("#", 1)[0].split("?", 1)[0]
    segment = path.rstrip("/").rsplit("/", 1)[-1]
    if "." not in segment:
        return ""
    return segment.rsplit(".", 1)[1].lower()


def select_render_mode(blob_ref: Any) -> RenderMode:
    """Map a blob reference to its presentation mode. Never raises."""
    return EXTENSION_MODES.get(file_extension(blob_ref), RenderMode.DOWNLOAD_ONLY)
