from lawpipe.config.settings import Settings
from lawpipe.ocr.base import BaseOcrEngine
from lawpipe.ocr.pdfplumber_adapter import PdfPlumberAdapter
from lawpipe.ocr.pymupdf_adapter import PyMuPdfAdapter, PyMuPdfOcrAdapter
from lawpipe.pipeline.errors import ConfigurationError


class OcrEngineFactory:
    """Creates the correct OCR engine based on settings."""

    ADAPTERS: dict[str, type[BaseOcrEngine]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
        "pymupdf_ocr": PyMuPdfOcrAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseOcrEngine:
        engine = settings.ocr_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ConfigurationError(
                f"Unknown OCR engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        if adapter_cls is PyMuPdfOcrAdapter:
            return PyMuPdfOcrAdapter(language=settings.ocr_language, dpi=settings.render_dpi)
        return adapter_cls()
