class OcrError(Exception):
    """Raised when text cannot be extracted from a PDF."""


class CorruptedPdfError(OcrError):
    """Raised when the PDF artifact cannot be opened or parsed."""


class OcrInitializationError(OcrError):
    """Raised when the OCR engine itself is unavailable (e.g. tesseract missing)."""
