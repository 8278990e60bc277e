"""HTML pages served for link views."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import Settings
from ..storage import BlobStorageError, BlobStore
from .selector import RenderMode, select_render_mode

logger = structlog.get_logger()

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
FILE_NOT_FOUND_NOTICE = "File not found"

_ENV: Optional[Environment] = None


def _get_env() -> Environment:
    global _ENV
    if _ENV is None:
        _ENV = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
    return _ENV


def _render_template(template: str, context: Dict[str, Any]) -> str:
    return _get_env().get_template(template).render(**context)


def absolute_url(ref: str, base_url: str) -> str:
    """Turn a path reference into an absolute URL; absolute refs pass through."""
    if ref.startswith(("http://", "https://")):
        return ref
    return f"{base_url.rstrip('/')}/{ref.lstrip('/')}"


@dataclass
class Presentation:
    """Everything a link page needs to show an allowed file."""

    mode: RenderMode
    file_url: str
    download_url: str
    viewer_url: Optional[str] = None
    text_content: Optional[str] = None
    notice: Optional[str] = None


async def build_presentation(
    link: Any, blob_store: BlobStore, settings: Settings
) -> Presentation:
    """Build the presentation for a link the access gate allowed."""
    ref = link.blob_ref
    mode = select_render_mode(ref)
    file_url = absolute_url(ref, settings.public_base_url)
    presentation = Presentation(mode=mode, file_url=file_url, download_url=file_url)

    if mode is RenderMode.OFFICE_PREVIEW:
        presentation.viewer_url = settings.office_viewer_url + quote(file_url, safe="")
    elif mode is RenderMode.TEXT_INLINE:
        try:
            presentation.text_content = await blob_store.read_text(ref)
        except BlobStorageError as e:
            logger.warning("Inline text unavailable", link_id=link.id, blob_ref=ref, error=str(e))
            presentation.notice = FILE_NOT_FOUND_NOTICE

    return presentation


def render_link_page(link: Any, presentation: Presentation) -> str:
    return _render_template(
        "link_view.html.jinja",
        {"link": link, "p": presentation, "modes": RenderMode},
    )


def render_denied_page(link_id: str, password_supplied: bool) -> str:
    return _render_template(
        "access_denied.html.jinja",
        {"link_id": link_id, "password_supplied": password_supplied},
    )


def render_expired_page(link_id: str) -> str:
    return _render_template("link_expired.html.jinja", {"link_id": link_id})


def render_not_found_page(link_id: str) -> str:
    return _render_template("link_not_found.html.jinja", {"link_id": link_id})
