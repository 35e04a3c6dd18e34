from pathlib import Path

import pymupdf

from lawpipe.ocr.base import BaseOcrEngine
from lawpipe.ocr.exceptions import CorruptedPdfError, OcrError, OcrInitializationError


class PyMuPdfAdapter(BaseOcrEngine):
    """Reads the embedded text layer with PyMuPDF."""

    def extract(self, pdf_path: Path) -> str:
        try:
            doc = pymupdf.open(pdf_path)  # type: ignore[no-untyped-call]
        except (pymupdf.FileDataError, RuntimeError) as exc:
            raise CorruptedPdfError(f"pymupdf cannot open {pdf_path}: {exc}") from exc
        try:
            with doc:
                pages = [self._page_text(page) for page in doc]
            return "\n".join(pages).strip()
        except OcrError:
            raise
        except Exception as exc:
            raise OcrError(f"pymupdf extraction failed: {exc}") from exc

    def _page_text(self, page: pymupdf.Page) -> str:
        return page.get_text()


class PyMuPdfOcrAdapter(PyMuPdfAdapter):
    """Runs tesseract OCR on every page through PyMuPDF."""

    def __init__(self, language: str, dpi: int) -> None:
        self._language = language
        self._dpi = dpi

    def _page_text(self, page: pymupdf.Page) -> str:
        try:
            textpage = page.get_textpage_ocr(language=self._language, dpi=self._dpi, full=True)
        except RuntimeError as exc:
            raise OcrInitializationError(f"Tesseract OCR unavailable: {exc}") from exc
        return page.get_text(textpage=textpage)
