from pathlib import Path
from unittest.mock import MagicMock

import pytest

from lawpipe.ocr.exceptions import CorruptedPdfError, OcrInitializationError
from lawpipe.ocr.factory import OcrEngineFactory
from lawpipe.ocr.pdfplumber_adapter import PdfPlumberAdapter
from lawpipe.ocr.pymupdf_adapter import PyMuPdfAdapter, PyMuPdfOcrAdapter
from lawpipe.ocr.rasterizer import PageRasterizer
from lawpipe.pipeline.errors import ConfigurationError


@pytest.fixture()
def law_pdf(tmp_path: Path, law_pdf_bytes: bytes) -> Path:
    path = tmp_path / "loi-2024-15.pdf"
    path.write_bytes(law_pdf_bytes)
    return path


@pytest.fixture()
def broken_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf at all")
    return path


@pytest.mark.parametrize("adapter_cls", [PdfPlumberAdapter, PyMuPdfAdapter])
class TestTextLayerAdapters:
    def test_extracts_all_pages(self, adapter_cls, law_pdf: Path) -> None:  # type: ignore[no-untyped-def]
        text = adapter_cls().extract(law_pdf)
        assert "Article 1er" in text
        assert "Patrice TALON" in text

    def test_blank_pdf_gives_empty_text(self, adapter_cls, tmp_path: Path, empty_pdf_bytes: bytes) -> None:  # type: ignore[no-untyped-def]
        path = tmp_path / "blank.pdf"
        path.write_bytes(empty_pdf_bytes)
        assert adapter_cls().extract(path) == ""

    def test_corrupted_pdf(self, adapter_cls, broken_pdf: Path) -> None:  # type: ignore[no-untyped-def]
        with pytest.raises(CorruptedPdfError):
            adapter_cls().extract(broken_pdf)


class TestPyMuPdfOcrAdapter:
    def test_missing_tesseract_is_init_error(self) -> None:
        page = MagicMock()
        page.get_textpage_ocr.side_effect = RuntimeError("No tessdata specified")
        with pytest.raises(OcrInitializationError):
            PyMuPdfOcrAdapter(language="fra", dpi=200)._page_text(page)

    def test_uses_language_and_dpi(self) -> None:
        page = MagicMock()
        page.get_text.return_value = "Article 1er"
        text = PyMuPdfOcrAdapter(language="fra", dpi=300)._page_text(page)
        assert text == "Article 1er"
        page.get_textpage_ocr.assert_called_once_with(language="fra", dpi=300, full=True)


class TestPageRasterizer:
    def test_renders_one_png_per_page(self, law_pdf: Path, tmp_path: Path) -> None:
        out = tmp_path / "images"
        pages = PageRasterizer(dpi=50).render(law_pdf, out, lambda n: f"page-{n:04d}.png")
        assert [p.name for p in pages] == ["page-0001.png", "page-0002.png"]
        assert all(p.read_bytes().startswith(b"\x89PNG") for p in pages)

    def test_corrupted_pdf(self, broken_pdf: Path, tmp_path: Path) -> None:
        with pytest.raises(CorruptedPdfError):
            PageRasterizer(dpi=50).render(broken_pdf, tmp_path / "out", str)


class TestOcrEngineFactory:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("pdfplumber", PdfPlumberAdapter), ("PyMuPDF", PyMuPdfAdapter), ("pymupdf_ocr", PyMuPdfOcrAdapter)],
    )
    def test_creates_adapter(self, name: str, expected: type) -> None:
        settings = MagicMock(ocr_engine=name, ocr_language="fra", render_dpi=200)
        assert type(OcrEngineFactory.create(settings)) is expected

    def test_unknown_engine(self) -> None:
        settings = MagicMock(ocr_engine="abbyy")
        with pytest.raises(ConfigurationError, match="Unknown OCR engine"):
            OcrEngineFactory.create(settings)
