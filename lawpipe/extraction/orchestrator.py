from collections.abc import Callable
from dataclasses import dataclass

from lawpipe.config.settings import Settings
from lawpipe.extraction.ai_extractor import AiExtractor
from lawpipe.extraction.factory import AiProvider
from lawpipe.extraction.models import ExtractionMethod, ExtractionResult
from lawpipe.logging.logger import Log
from lawpipe.parsing.parser import PatternParser
from lawpipe.pipeline.capacity import available_units, is_ai_capable
from lawpipe.pipeline.errors import ErrorKind, StageError

AI_MODE_CORRECT_OCR = "correct_ocr"
AI_MODE_FULL = "full"
AI_MODES = (AI_MODE_CORRECT_OCR, AI_MODE_FULL)


@dataclass(frozen=True)
class ConfidenceTiers:
    """Confidence bands per extraction method.

    Pattern methods map the parser's base score into their [low, high] band;
    AI methods carry a fixed value.
    """

    pattern: tuple[float, float] = (0.5, 0.7)
    pattern_corrected: tuple[float, float] = (0.7, 0.8)
    ai_corrected_ocr: float = 0.9
    ai_full: float = 0.95

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConfidenceTiers":
        return cls(
            pattern=(settings.confidence_pattern_low, settings.confidence_pattern_high),
            pattern_corrected=(
                settings.confidence_corrected_low,
                settings.confidence_corrected_high,
            ),
            ai_corrected_ocr=settings.confidence_ai_corrected_ocr,
            ai_full=settings.confidence_ai_full,
        )

    @staticmethod
    def scale(base: float, band: tuple[float, float]) -> float:
        low, high = band
        return round(low + max(0.0, min(1.0, base)) * (high - low), 4)


@dataclass(frozen=True)
class ExtractionRequest:
    """Inputs available for one document in one pass."""

    document_id: str
    document_type: str
    raw_text: str
    corrected_text: str | None = None
    corrections_applied: int = 0
    images: tuple[bytes, ...] = ()


class ExtractionOrchestrator:
    """Chooses between pattern and AI-assisted extraction for a document.

    Pattern extraction always runs. AI runs when the machine has enough
    capacity and a provider (primary, then secondary) answers its probe.
    The highest-confidence successful result wins; only when every method
    fails does the document fail.
    """

    def __init__(
        self,
        *,
        parser: PatternParser,
        ai_extractor: AiExtractor | None,
        providers: list[AiProvider],
        tiers: ConfidenceTiers,
        ai_mode: str = AI_MODE_CORRECT_OCR,
        pattern_accept_confidence: float = 1.0,
        capacity_check: Callable[[], bool] | None = None,
    ) -> None:
        if ai_mode not in AI_MODES:
            raise ValueError(f"Unknown AI mode '{ai_mode}'. Choose from: {list(AI_MODES)}")
        self._parser = parser
        self._ai = ai_extractor
        self._providers = providers
        self._tiers = tiers
        self._ai_mode = ai_mode
        self._pattern_accept_confidence = pattern_accept_confidence
        self._capacity_check = capacity_check or (lambda: True)

    @classmethod
    def ai_capacity_check(cls, min_units: int) -> Callable[[], bool]:
        def check() -> bool:
            if is_ai_capable(min_units):
                return True
            Log.info(f"Skipping AI: {available_units()} units available, {min_units} required")
            return False

        return check

    def extract(self, request: ExtractionRequest, stage: str) -> ExtractionResult | StageError:
        candidates: list[ExtractionResult] = []
        ai_failed = False

        pattern_results = self._pattern_results(request)
        best_pattern = max((r.confidence for r in pattern_results), default=0.0)
        if best_pattern >= self._pattern_accept_confidence:
            Log.debug(f"{request.document_id}: pattern result accepted without AI")
        else:
            ai_result = self._ai_result(request)
            if isinstance(ai_result, StageError):
                ai_failed = ai_result.kind is not ErrorKind.AI_UNAVAILABLE
            else:
                candidates.append(ai_result)
        candidates.extend(pattern_results)

        if not candidates:
            kind = ErrorKind.EXTRACTION_FAILED if ai_failed else ErrorKind.NO_ARTICLES
            return StageError(
                kind=kind,
                document_id=request.document_id,
                stage=stage,
                cause="No extraction method produced articles",
            )
        selected = max(candidates, key=lambda r: r.confidence)
        Log.info(
            f"{request.document_id}: selected '{selected.method}' "
            f"({selected.confidence:.2f}, {len(selected.articles)} articles) "
            f"among {[c.method for c in candidates]}"
        )
        return selected

    def extract_with_ai(
        self,
        request: ExtractionRequest,
        stage: str,
    ) -> ExtractionResult | StageError:
        """AI-only extraction used to enrich an already structured document."""
        result = self._ai_result(request)
        if isinstance(result, StageError):
            return StageError(
                kind=result.kind,
                document_id=request.document_id,
                stage=stage,
                cause=result.cause,
            )
        return result

    def select_provider(self) -> AiProvider | None:
        """First available provider in priority order."""
        for provider in self._providers:
            if provider.is_available():
                return provider
        return None

    def _pattern_results(self, request: ExtractionRequest) -> list[ExtractionResult]:
        results: list[ExtractionResult] = []
        attempts = [(ExtractionMethod.PATTERN, request.raw_text, self._tiers.pattern, 0)]
        if request.corrected_text is not None:
            attempts.append(
                (
                    ExtractionMethod.PATTERN_CORRECTED,
                    request.corrected_text,
                    self._tiers.pattern_corrected,
                    request.corrections_applied,
                )
            )
        for method, text, band, corrections in attempts:
            parsed = self._parser.parse(text)
            if not parsed.articles:
                Log.info(f"{request.document_id}: '{method.value}' found no articles")
                continue
            results.append(
                ExtractionResult(
                    articles=parsed.articles,
                    metadata=parsed.metadata,
                    confidence=self._tiers.scale(parsed.confidence, band),
                    method=method.value,
                    anomalies=parsed.anomalies,
                    corrections_applied=corrections,
                )
            )
        return results

    def _ai_result(self, request: ExtractionRequest) -> ExtractionResult | StageError:
        def unavailable(cause: str) -> StageError:
            return StageError(ErrorKind.AI_UNAVAILABLE, request.document_id, "ai", cause)

        if self._ai is None or not self._providers:
            return unavailable("No AI provider configured")
        if not self._capacity_check():
            return unavailable("Insufficient local capacity for AI extraction")
        provider = self.select_provider()
        if provider is None:
            Log.info(f"{request.document_id}: no AI provider available, using pattern extraction")
            return unavailable("No AI provider reachable")

        try:
            if self._ai_mode == AI_MODE_FULL:
                articles, metadata = self._ai.extract_full(
                    provider,
                    request.corrected_text or request.raw_text,
                    request.document_type,
                    list(request.images),
                )
                return ExtractionResult(
                    articles=articles,
                    metadata=metadata,
                    confidence=self._tiers.ai_full,
                    method=ExtractionMethod.AI_FULL.value,
                )
            corrected = self._ai.correct_ocr(provider, request.raw_text, request.document_type)
            parsed = self._parser.parse(corrected)
            if not parsed.articles:
                return StageError(
                    ErrorKind.NO_ARTICLES,
                    request.document_id,
                    "ai",
                    "AI-corrected text contains no articles",
                )
            return ExtractionResult(
                articles=parsed.articles,
                metadata=parsed.metadata,
                confidence=self._tiers.ai_corrected_ocr,
                method=ExtractionMethod.AI_CORRECTED_OCR.value,
                anomalies=parsed.anomalies,
            )
        except Exception as exc:
            Log.warning(
                f"{request.document_id}: AI extraction via '{provider.name}' failed: {exc}"
            )
            return StageError(ErrorKind.EXTRACTION_FAILED, request.document_id, "ai", str(exc))
