from collections.abc import Callable
from pathlib import Path

import pymupdf

from lawpipe.ocr.exceptions import CorruptedPdfError, OcrError


class PageRasterizer:
    """Renders every PDF page to a PNG image."""

    def __init__(self, dpi: int) -> None:
        self._dpi = dpi

    def render(
        self,
        pdf_path: Path,
        output_dir: Path,
        name_for_page: Callable[[int], str],
    ) -> list[Path]:
        """Write one PNG per page into *output_dir*.

        Returns:
            Written image paths, in page order.
        """
        try:
            doc = pymupdf.open(pdf_path)  # type: ignore[no-untyped-call]
        except (pymupdf.FileDataError, RuntimeError) as exc:
            raise CorruptedPdfError(f"pymupdf cannot open {pdf_path}: {exc}") from exc
        output_dir.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        try:
            with doc:
                for page_number, page in enumerate(doc, start=1):
                    target = output_dir / name_for_page(page_number)
                    page.get_pixmap(dpi=self._dpi).save(target)
                    written.append(target)
        except Exception as exc:
            raise OcrError(f"Rendering {pdf_path} failed: {exc}") from exc
        return written
