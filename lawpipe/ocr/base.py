from abc import ABC, abstractmethod
from pathlib import Path


class BaseOcrEngine(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(self, pdf_path: Path) -> str:
        """Extract plain text from a PDF artifact.

        Args:
            pdf_path: Path to the stored PDF.

        Returns:
            Extracted text, pages separated by newlines.

        Raises:
            CorruptedPdfError: if the file cannot be opened as a PDF.
            OcrInitializationError: if the engine cannot start.
            OcrError: if extraction fails for any other reason.
        """
