"""Tests for render mode selection and link page rendering."""

from types import SimpleNamespace

import pytest

from sharelink.config import Settings
from sharelink.render import (
    RenderMode,
    build_presentation,
    file_extension,
    render_denied_page,
    render_link_page,
    select_render_mode,
)
from sharelink.storage import BlobStore, BlobStorageError


class TestFileExtension:
    @pytest.mark.parametrize(
        "ref,expected",
        [
            ("/uploads/1700-ab.png", "png"),
            ("/uploads/1700-ab.PNG", "png"),
            ("/uploads/archive.tar.gz", "gz"),
            ("https://bucket.s3.amazonaws.com/a/b/report.pdf?X-Amz=1#page=2", "pdf"),
            ("/uploads/README", ""),
            ("/some.dir/file", ""),
            ("", ""),
        ],
    )
    def test_extracts_lowercase_extension_of_last_segment(self, ref, expected):
        assert file_extension(ref) == expected


class TestSelectRenderMode:
    @pytest.mark.parametrize(
        "ref,mode",
        [
            ("/uploads/a.png", RenderMode.IMAGE_PREVIEW),
            ("/uploads/a.JPG", RenderMode.IMAGE_PREVIEW),
            ("/uploads/a.jpeg", RenderMode.IMAGE_PREVIEW),
            ("/uploads/a.gif", RenderMode.IMAGE_PREVIEW),
            ("/uploads/a.bmp", RenderMode.IMAGE_PREVIEW),
            ("/uploads/a.webp", RenderMode.IMAGE_PREVIEW),
            ("/uploads/a.pdf", RenderMode.PDF_PREVIEW),
            ("/uploads/a.doc", RenderMode.OFFICE_PREVIEW),
            ("/uploads/a.docx", RenderMode.OFFICE_PREVIEW),
            ("/uploads/a.txt", RenderMode.TEXT_INLINE),
            ("/uploads/a.md", RenderMode.TEXT_INLINE),
            ("/uploads/a.json", RenderMode.TEXT_INLINE),
            ("/uploads/a.js", RenderMode.TEXT_INLINE),
            ("/uploads/a.html", RenderMode.TEXT_INLINE),
            ("/uploads/a.css", RenderMode.TEXT_INLINE),
            ("/uploads/a.exe", RenderMode.DOWNLOAD_ONLY),
            ("/uploads/a.zip", RenderMode.DOWNLOAD_ONLY),
            ("/uploads/noext", RenderMode.DOWNLOAD_ONLY),
        ],
    )
    def test_maps_extension_to_mode(self, ref, mode):
        assert select_render_mode(ref) is mode

    @pytest.mark.parametrize("ref", [None, 42, b"/uploads/a.png", "", "...", "/"])
    def test_never_raises(self, ref):
        assert select_render_mode(ref) is RenderMode.DOWNLOAD_ONLY


class StaticTextStore(BlobStore):
    """Blob store that serves fixed text or fails."""

    def __init__(self, text=None):
        self.text = text

    def owns(self, ref):
        return True

    def _write(self, name, data, content_type):
        raise NotImplementedError

    def _read(self, ref):
        if self.text is None:
            raise BlobStorageError("gone")
        return self.text.encode("utf-8")

    def _delete(self, ref):
        return False


@pytest.fixture
def settings():
    return Settings(
        public_base_url="https://share.example.com",
        office_viewer_url="https://viewer.example.com/?src=",
    )


def make_link(blob_ref, title="Notes"):
    return SimpleNamespace(id="f" * 32, title=title, blob_ref=blob_ref)


class TestBuildPresentation:
    @pytest.mark.asyncio
    async def test_text_inline_fetches_content(self, settings):
        link = make_link("/uploads/1-a.md")
        presentation = await build_presentation(link, StaticTextStore("# Hello"), settings)

        assert presentation.mode is RenderMode.TEXT_INLINE
        assert presentation.text_content == "# Hello"
        assert presentation.notice is None

    @pytest.mark.asyncio
    async def test_text_inline_missing_content_yields_notice(self, settings):
        link = make_link("/uploads/1-a.txt")
        presentation = await build_presentation(link, StaticTextStore(None), settings)

        assert presentation.mode is RenderMode.TEXT_INLINE
        assert presentation.text_content is None
        assert presentation.notice == "File not found"

    @pytest.mark.asyncio
    async def test_relative_refs_become_absolute(self, settings):
        link = make_link("/uploads/1-a.png")
        presentation = await build_presentation(link, StaticTextStore(), settings)

        assert presentation.file_url == "https://share.example.com/uploads/1-a.png"
        assert presentation.download_url == presentation.file_url

    @pytest.mark.asyncio
    async def test_office_preview_uses_viewer_proxy(self, settings):
        link = make_link("https://cdn.example.com/files/1-a.docx")
        presentation = await build_presentation(link, StaticTextStore(), settings)

        assert presentation.mode is RenderMode.OFFICE_PREVIEW
        assert presentation.viewer_url == (
            "https://viewer.example.com/?src="
            "https%3A%2F%2Fcdn.example.com%2Ffiles%2F1-a.docx"
        )


class TestPages:
    @pytest.mark.asyncio
    async def test_text_content_is_escaped(self, settings):
        link = make_link("/uploads/1-a.html", title="<b>page</b>")
        presentation = await build_presentation(
            link, StaticTextStore("<script>alert(1)</script>"), settings
        )

        html = render_link_page(link, presentation)

        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
        assert "<script>alert(1)</script>" not in html
        assert "&lt;b&gt;page&lt;/b&gt;" in html

    @pytest.mark.asyncio
    async def test_image_page_has_inline_image_and_download(self, settings):
        link = make_link("/uploads/1-a.png")
        presentation = await build_presentation(link, StaticTextStore(), settings)

        html = render_link_page(link, presentation)

        assert '<img src="https://share.example.com/uploads/1-a.png"' in html
        assert "Download file" in html

    @pytest.mark.asyncio
    async def test_download_only_page_has_no_preview(self, settings):
        link = make_link("/uploads/1-a.exe")
        presentation = await build_presentation(link, StaticTextStore(), settings)

        html = render_link_page(link, presentation)

        assert 'data-mode="download_only"' in html
        assert "<img" not in html
        assert "<iframe" not in html
        assert "Download file" in html

    def test_denied_page_offers_password_form(self):
        html = render_denied_page("a" * 32, password_supplied=True)
        assert "Incorrect password" in html
        assert f'action="/links/{"a" * 32}"' in html
        assert 'name="password"' in html
