from pathlib import Path

import pdfplumber
from pdfplumber.utils.exceptions import PdfminerException

from lawpipe.ocr.base import BaseOcrEngine
from lawpipe.ocr.exceptions import CorruptedPdfError, OcrError


class PdfPlumberAdapter(BaseOcrEngine):
    """Reads the embedded text layer with pdfplumber."""

    def extract(self, pdf_path: Path) -> str:
        try:
            with pdfplumber.open(pdf_path) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
            return "\n".join(pages).strip()
        except PdfminerException as exc:
            raise CorruptedPdfError(f"pdfplumber cannot parse {pdf_path}: {exc}") from exc
        except Exception as exc:
            raise OcrError(f"pdfplumber extraction failed: {exc}") from exc
