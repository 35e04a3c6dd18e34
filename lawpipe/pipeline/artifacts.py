import hashlib
from pathlib import Path

from lawpipe.config.settings import Settings
from lawpipe.database.models import DocumentRecord


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class ArtifactStore:
    """Resolves conventional artifact paths and reads/writes their contents.

    Layout:
        {pdf_root}/{type}/{documentId}.pdf
        {images_root}/{documentId}/page-XXXX.png
        {text_root}/{type}/{documentId}.txt
        {text_root}/{type}/{documentId}.corrected.txt
        {json_root}/{type}/{documentId}.json
    """

    def __init__(
        self,
        pdf_root: Path,
        images_root: Path,
        text_root: Path,
        json_root: Path,
    ) -> None:
        self._pdf_root = pdf_root
        self._images_root = images_root
        self._text_root = text_root
        self._json_root = json_root

    @classmethod
    def from_settings(cls, settings: Settings) -> "ArtifactStore":
        return cls(
            pdf_root=Path(settings.pdf_root),
            images_root=Path(settings.images_root),
            text_root=Path(settings.text_root),
            json_root=Path(settings.json_root),
        )

    def pdf_path(self, record: DocumentRecord) -> Path:
        return self._pdf_root / record.doc_type.value / f"{record.document_id}.pdf"

    def images_dir(self, record: DocumentRecord) -> Path:
        return self._images_root / record.document_id

    @staticmethod
    def page_image_name(page_number: int) -> str:
        return f"page-{page_number:04d}.png"

    def text_path(self, record: DocumentRecord) -> Path:
        return self._text_root / record.doc_type.value / f"{record.document_id}.txt"

    def corrected_text_path(self, record: DocumentRecord) -> Path:
        return self._text_root / record.doc_type.value / f"{record.document_id}.corrected.txt"

    def json_path(self, record: DocumentRecord) -> Path:
        return self._json_root / record.doc_type.value / f"{record.document_id}.json"

    @staticmethod
    def write_bytes(path: Path, data: bytes) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_bytes(data)
        tmp.replace(path)
        return path

    @classmethod
    def write_text(cls, path: Path, text: str) -> Path:
        return cls.write_bytes(path, text.encode("utf-8"))

    @staticmethod
    def read_text(path_value: str | None) -> str:
        """Read a referenced text artifact.

        Raises:
            FileNotFoundError: if the reference is empty or the file is missing.
        """
        if not path_value:
            raise FileNotFoundError("Artifact reference is empty")
        path = Path(path_value)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.read_text(encoding="utf-8")

    @staticmethod
    def is_present(path_value: str | None) -> bool:
        """True when the referenced file exists and is non-empty."""
        if not path_value:
            return False
        path = Path(path_value)
        return path.is_file() and path.stat().st_size > 0

    @staticmethod
    def list_page_images(images_dir: str | None) -> list[Path]:
        if not images_dir:
            return []
        directory = Path(images_dir)
        if not directory.is_dir():
            return []
        return sorted(directory.glob("page-*.png"))
