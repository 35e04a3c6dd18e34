import json
from pathlib import Path

from lawpipe.correction.engine import TextCorrectionEngine, count_token_changes
from lawpipe.correction.speller import SpellerError
from lawpipe.database.models import DocumentRecord
from lawpipe.extraction.exceptions import AiResponseValidationError
from lawpipe.extraction.models import ExtractionResult
from lawpipe.extraction.orchestrator import ExtractionOrchestrator, ExtractionRequest
from lawpipe.extraction.validator import validate_and_build
from lawpipe.logging.logger import Log
from lawpipe.ocr.base import BaseOcrEngine
from lawpipe.ocr.exceptions import CorruptedPdfError, OcrError, OcrInitializationError
from lawpipe.ocr.rasterizer import PageRasterizer
from lawpipe.pipeline.artifacts import ArtifactStore, sha256_hex
from lawpipe.pipeline.errors import ErrorKind, StageError
from lawpipe.pipeline.status import DocumentFlag
from lawpipe.source.base import BaseDocumentSource
from lawpipe.source.exceptions import SourceError, SourceNotFoundError, SourceTimeoutError
from lawpipe.stages.engine import StageStep, StepResult

PDF_MAGIC = b"%PDF"


def _source_error_kind(exc: SourceError) -> ErrorKind:
    if isinstance(exc, SourceNotFoundError):
        return ErrorKind.SOURCE_NOT_FOUND
    if isinstance(exc, SourceTimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.NETWORK_ERROR


class FetchStep(StageStep):
    """Confirms the document is published at its source URL."""

    stage_name = "fetch"

    def __init__(self, source: BaseDocumentSource) -> None:
        self._source = source

    def run(self, record: DocumentRecord) -> StepResult | StageError:
        try:
            self._source.check_exists(record.source_url)
        except SourceError as exc:
            return self.fail(record, _source_error_kind(exc), exc)
        Log.info(f"Fetched {record.document_id}")
        return StepResult()


class DownloadStep(StageStep):
    """Stores the PDF and records its SHA-256 content hash."""

    stage_name = "download"

    def __init__(
        self,
        source: BaseDocumentSource,
        artifacts: ArtifactStore,
        min_pdf_bytes: int = 1024,
    ) -> None:
        self._source = source
        self._artifacts = artifacts
        self._min_pdf_bytes = min_pdf_bytes

    def run(self, record: DocumentRecord) -> StepResult | StageError:
        try:
            data = self._source.download(record.source_url)
        except SourceError as exc:
            return self.fail(record, _source_error_kind(exc), exc)
        if len(data) < self._min_pdf_bytes:
            return self.fail(record, ErrorKind.EMPTY_PDF, f"Payload is {len(data)} bytes")
        if not data.startswith(PDF_MAGIC):
            return self.fail(record, ErrorKind.CORRUPTED_PDF, "Payload is not a PDF")
        try:
            path = self._artifacts.write_bytes(self._artifacts.pdf_path(record), data)
        except OSError as exc:
            return self.fail(record, ErrorKind.STORAGE_ERROR, exc)
        content_hash = sha256_hex(data)
        Log.info(f"Downloaded {record.document_id} ({len(data)} bytes, sha256 {content_hash[:8]})")
        return StepResult(changes={"pdf_path": str(path), "content_hash": content_hash})


class OcrStep(StageStep):
    """Extracts raw text from the stored PDF."""

    stage_name = "ocr"

    def __init__(self, engine: BaseOcrEngine, artifacts: ArtifactStore) -> None:
        self._engine = engine
        self._artifacts = artifacts

    def run(self, record: DocumentRecord) -> StepResult | StageError:
        if not self._artifacts.is_present(record.pdf_path):
            return self.fail(record, ErrorKind.MISSING_ARTIFACT, f"PDF missing: {record.pdf_path}")
        try:
            text = self._engine.extract(Path(record.pdf_path or ""))
        except CorruptedPdfError as exc:
            return self.fail(record, ErrorKind.CORRUPTED_PDF, exc)
        except OcrInitializationError as exc:
            return self.fail(record, ErrorKind.OCR_ENGINE_INIT, exc)
        except OcrError as exc:
            return self.fail(record, ErrorKind.OCR_FAILED, exc)
        if not text.strip():
            return self.fail(record, ErrorKind.OCR_EMPTY, "OCR produced no text")
        try:
            path = self._artifacts.write_text(self._artifacts.text_path(record), text)
        except OSError as exc:
            return self.fail(record, ErrorKind.STORAGE_ERROR, exc)
        Log.info(f"OCR extracted {len(text)} chars from {record.document_id}")
        return StepResult(changes={"text_path": str(path)})


class RenderImagesStep(StageStep):
    """Rasterizes PDF pages for image-based AI extraction."""

    stage_name = "images"

    def __init__(self, rasterizer: PageRasterizer, artifacts: ArtifactStore) -> None:
        self._rasterizer = rasterizer
        self._artifacts = artifacts

    def run(self, record: DocumentRecord) -> StepResult | StageError:
        if not self._artifacts.is_present(record.pdf_path):
            return self.fail(record, ErrorKind.MISSING_ARTIFACT, f"PDF missing: {record.pdf_path}")
        output_dir = self._artifacts.images_dir(record)
        try:
            pages = self._rasterizer.render(
                Path(record.pdf_path or ""),
                output_dir,
                self._artifacts.page_image_name,
            )
        except CorruptedPdfError as exc:
            return self.fail(record, ErrorKind.CORRUPTED_PDF, exc)
        except OcrError as exc:
            return self.fail(record, ErrorKind.RENDER_FAILED, exc)
        if not pages:
            return self.fail(record, ErrorKind.RENDER_FAILED, "PDF has no pages")
        Log.info(f"Rendered {len(pages)} pages for {record.document_id}")
        return StepResult(changes={"images_path": str(output_dir)})


class CorrectTextStep(StageStep):
    """Normalizes OCR noise and stores the corrected text next to the raw text."""

    stage_name = "correct"

    def __init__(self, engine: TextCorrectionEngine, artifacts: ArtifactStore) -> None:
        self._engine = engine
        self._artifacts = artifacts

    def run(self, record: DocumentRecord) -> StepResult | StageError:
        try:
            raw_text = self._artifacts.read_text(record.text_path)
        except FileNotFoundError as exc:
            return self.fail(record, ErrorKind.MISSING_ARTIFACT, exc)
        try:
            outcome = self._engine.correct(raw_text)
        except SpellerError as exc:
            return self.fail(record, ErrorKind.SPELLCHECK_UNAVAILABLE, exc)
        try:
            path = self._artifacts.write_text(
                self._artifacts.corrected_text_path(record), outcome.text
            )
        except OSError as exc:
            return self.fail(record, ErrorKind.STORAGE_ERROR, exc)
        Log.info(f"Corrected {len(outcome.corrections)} tokens in {record.document_id}")
        return StepResult(changes={"corrected_text_path": str(path)})


class _ExtractionStep(StageStep):
    def __init__(
        self,
        orchestrator: ExtractionOrchestrator,
        artifacts: ArtifactStore,
        use_images: bool = False,
    ) -> None:
        self._orchestrator = orchestrator
        self._artifacts = artifacts
        self._use_images = use_images

    def _request(self, record: DocumentRecord) -> ExtractionRequest:
        """Raises FileNotFoundError when the raw OCR text is missing."""
        raw_text = self._artifacts.read_text(record.text_path)
        corrected_text = None
        corrections = 0
        if self._artifacts.is_present(record.corrected_text_path):
            corrected_text = self._artifacts.read_text(record.corrected_text_path)
            corrections = count_token_changes(raw_text, corrected_text)
        images: tuple[bytes, ...] = ()
        if self._use_images and record.has_flag(DocumentFlag.RENDERED_IMAGES):
            images = tuple(
                page.read_bytes() for page in self._artifacts.list_page_images(record.images_path)
            )
        return ExtractionRequest(
            document_id=record.document_id,
            document_type=record.doc_type.value,
            raw_text=raw_text,
            corrected_text=corrected_text,
            corrections_applied=corrections,
            images=images,
        )

    def _store(self, record: DocumentRecord, result: ExtractionResult) -> StepResult | StageError:
        payload = json.dumps(result.to_dict(record.document_id), ensure_ascii=False, indent=2)
        try:
            path = self._artifacts.write_text(self._artifacts.json_path(record), payload)
        except OSError as exc:
            return self.fail(record, ErrorKind.STORAGE_ERROR, exc)
        return StepResult(
            changes={
                "json_path": str(path),
                "confidence": result.confidence,
                "extraction_method": result.method,
            }
        )


class StructureStep(_ExtractionStep):
    """Runs the extraction orchestrator and stores the selected result as JSON."""

    stage_name = "structure"

    def run(self, record: DocumentRecord) -> StepResult | StageError:
        try:
            request = self._request(record)
        except FileNotFoundError as exc:
            return self.fail(record, ErrorKind.MISSING_ARTIFACT, exc)
        outcome = self._orchestrator.extract(request, self.stage_name)
        if isinstance(outcome, StageError):
            return outcome
        return self._store(record, outcome)


class EnrichStep(_ExtractionStep):
    """Re-extracts low-confidence documents with AI; keeps the better result."""

    stage_name = "enrich"

    def __init__(
        self,
        orchestrator: ExtractionOrchestrator,
        artifacts: ArtifactStore,
        replace_margin: float,
        use_images: bool = False,
    ) -> None:
        super().__init__(orchestrator, artifacts, use_images)
        self._replace_margin = replace_margin

    def run(self, record: DocumentRecord) -> StepResult | StageError:
        try:
            request = self._request(record)
        except FileNotFoundError as exc:
            return self.fail(record, ErrorKind.MISSING_ARTIFACT, exc)
        outcome = self._orchestrator.extract_with_ai(request, self.stage_name)
        if isinstance(outcome, StageError):
            return outcome
        current = record.confidence or 0.0
        if outcome.confidence < current + self._replace_margin:
            Log.info(
                f"Kept existing result for {record.document_id}: "
                f"{outcome.method} {outcome.confidence:.2f} vs {current:.2f}"
            )
            return StepResult()
        Log.info(
            f"Replaced result for {record.document_id}: "
            f"{record.extraction_method} {current:.2f} -> {outcome.method} {outcome.confidence:.2f}"
        )
        return self._store(record, outcome)


class ConsolidateStep(StageStep):
    """Loads the JSON artifact so its articles are written with the status change."""

    stage_name = "consolidate"

    def __init__(self, artifacts: ArtifactStore) -> None:
        self._artifacts = artifacts

    def run(self, record: DocumentRecord) -> StepResult | StageError:
        try:
            payload = json.loads(self._artifacts.read_text(record.json_path))
        except FileNotFoundError as exc:
            return self.fail(record, ErrorKind.MISSING_ARTIFACT, exc)
        except json.JSONDecodeError as exc:
            return self.fail(record, ErrorKind.INVALID_JSON, exc)
        if not isinstance(payload, dict):
            return self.fail(record, ErrorKind.INVALID_JSON, "JSON artifact is not an object")
        try:
            articles, _ = validate_and_build(payload)
        except AiResponseValidationError as exc:
            return self.fail(record, ErrorKind.INVALID_JSON, exc)
        if not articles:
            return self.fail(record, ErrorKind.NO_ARTICLES, "JSON artifact has no articles")
        Log.info(f"Consolidating {len(articles)} articles for {record.document_id}")
        return StepResult(articles=articles)
