from datetime import timedelta
from pathlib import Path

from lawpipe.config.settings import Settings
from lawpipe.correction.dictionary import CorrectionDictionary
from lawpipe.correction.engine import TextCorrectionEngine
from lawpipe.correction.loader import load_curated_corrections
from lawpipe.correction.speller import BaseSpeller, LanguageToolSpeller, SpellerInitializationError
from lawpipe.database.repositories.base import BaseDocumentStore
from lawpipe.database.repositories.correction_repository import CorrectionRepository
from lawpipe.extraction.ai_extractor import AiExtractor
from lawpipe.extraction.factory import AiProviderFactory
from lawpipe.extraction.orchestrator import ConfidenceTiers, ExtractionOrchestrator
from lawpipe.logging.logger import Log
from lawpipe.ocr.factory import OcrEngineFactory
from lawpipe.ocr.rasterizer import PageRasterizer
from lawpipe.parsing.parser import PatternParser
from lawpipe.parsing.patterns import PatternConfig, load_signatories
from lawpipe.pipeline.artifacts import ArtifactStore
from lawpipe.pipeline.capacity import pool_size
from lawpipe.pipeline.errors import ConfigurationError
from lawpipe.pipeline.status import DocumentFlag, ProcessingStatus
from lawpipe.repair.scanner import FixScanner
from lawpipe.source.http_source import HttpDocumentSource
from lawpipe.stages.engine import StageDefinition, StageEngine
from lawpipe.stages.steps import (
    ConsolidateStep,
    CorrectTextStep,
    DownloadStep,
    EnrichStep,
    FetchStep,
    OcrStep,
    RenderImagesStep,
    StructureStep,
)

S = ProcessingStatus

STAGE_NAMES = (
    "fetch",
    "download",
    "ocr",
    "images",
    "correct",
    "structure",
    "enrich",
    "consolidate",
    "fix",
)


def _optional_path(value: str | None) -> Path | None:
    return Path(value) if value else None


def build_speller(settings: Settings) -> BaseSpeller | None:
    """LanguageTool speller, or None when spell checking is disabled."""
    if not settings.spellcheck_enabled:
        Log.info("Spell checking disabled, only stored corrections apply")
        return None
    try:
        return LanguageToolSpeller(settings.spellcheck_language, settings.languagetool_url)
    except SpellerInitializationError as exc:
        raise ConfigurationError(str(exc)) from exc


def build_correction_engine(
    settings: Settings,
    repository: CorrectionRepository,
) -> TextCorrectionEngine:
    """Seed curated entries, then load every stored entry behind the spell checker."""
    curated = load_curated_corrections(_optional_path(settings.corrections_csv_path))
    seeded = repository.seed_curated(curated)
    if seeded:
        Log.info(f"Seeded {seeded} curated corrections")
    dictionary = CorrectionDictionary(
        repository.find_all(),
        build_speller(settings),
        promotion_threshold=settings.correction_promotion_threshold,
        cache_size=settings.spellcheck_cache_size,
    )
    Log.info(f"Correction dictionary loaded with {len(dictionary)} entries")
    return TextCorrectionEngine(dictionary)


def build_orchestrator(settings: Settings) -> ExtractionOrchestrator:
    parser = PatternParser(
        PatternConfig.load(_optional_path(settings.patterns_path)),
        load_signatories(_optional_path(settings.signatories_path)),
        expected_chars_per_article=settings.expected_chars_per_article,
    )
    ai_extractor = AiExtractor(
        temperature=settings.ai_temperature,
        chunk_size=settings.ai_chunk_size,
        chunk_overlap=settings.ai_chunk_overlap,
    )
    try:
        return ExtractionOrchestrator(
            parser=parser,
            ai_extractor=ai_extractor,
            providers=AiProviderFactory.create_all(settings),
            tiers=ConfidenceTiers.from_settings(settings),
            ai_mode=settings.ai_mode,
            pattern_accept_confidence=settings.pattern_accept_confidence,
            capacity_check=ExtractionOrchestrator.ai_capacity_check(
                settings.ai_min_parallel_units
            ),
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def build_stage(
    settings: Settings,
    name: str,
    store: BaseDocumentStore,
) -> StageEngine | FixScanner:
    """Build the runnable unit for one stage name.

    Raises:
        ConfigurationError: for an unknown stage or when a stage's resources
            (patterns, dictionary, prompts, OCR engine) cannot be loaded.
    """
    artifacts = ArtifactStore.from_settings(settings)

    if name == "fix":
        return FixScanner(
            store,
            artifacts,
            min_confidence=settings.fix_min_confidence,
            max_repair_attempts=settings.max_repair_attempts,
            stuck_after=timedelta(hours=settings.fix_stuck_after_hours),
            page_size=max(1, settings.chunk_size * 10),
        )

    definition = _build_definition(settings, name, artifacts)
    workers = pool_size(settings.worker_ceiling)
    Log.info(f"Stage '{name}' ready with {workers} workers, chunk size {settings.chunk_size}")
    return StageEngine(definition, store, chunk_size=settings.chunk_size, pool_size=workers)


def _build_definition(
    settings: Settings,
    name: str,
    artifacts: ArtifactStore,
) -> StageDefinition:
    if name == "fetch":
        source = HttpDocumentSource(settings.http_timeout_seconds, settings.http_user_agent)
        return StageDefinition(
            name=name,
            input_statuses=(S.DISCOVERED,),
            step=FetchStep(source),
            success_status=S.FETCHED,
            failure_status=S.FAILED_FETCH,
        )
    if name == "download":
        source = HttpDocumentSource(settings.http_timeout_seconds, settings.http_user_agent)
        return StageDefinition(
            name=name,
            input_statuses=(S.FETCHED,),
            step=DownloadStep(source, artifacts, settings.min_pdf_bytes),
            success_status=S.DOWNLOADED,
            failure_status=S.FAILED_DOWNLOAD,
        )
    if name == "ocr":
        return StageDefinition(
            name=name,
            input_statuses=(S.DOWNLOADED,),
            step=OcrStep(OcrEngineFactory.create(settings), artifacts),
            success_status=S.OCR_EXTRACTED,
            failure_status=S.FAILED_OCR,
        )
    if name == "images":
        return StageDefinition(
            name=name,
            input_statuses=(
                S.DOWNLOADED,
                S.OCR_EXTRACTED,
                S.TEXT_CORRECTED,
                S.STRUCTURED,
                S.CONSOLIDATED,
                S.FAILED_OCR,
                S.FAILED_EXTRACTION,
            ),
            step=RenderImagesStep(PageRasterizer(settings.render_dpi), artifacts),
            success_flag=DocumentFlag.RENDERED_IMAGES,
            failure_flag=DocumentFlag.IMAGES_FAILED,
        )
    if name == "correct":
        repository = CorrectionRepository()
        engine = build_correction_engine(settings, repository)

        def flush_usage() -> None:
            usage = engine.dictionary.drain_usage()
            if usage:
                repository.flush_usage(usage)
                Log.debug(f"Flushed {len(usage)} correction usage deltas")

        return StageDefinition(
            name=name,
            input_statuses=(S.OCR_EXTRACTED,),
            step=CorrectTextStep(engine, artifacts),
            success_status=S.TEXT_CORRECTED,
            failure_status=S.FAILED_EXTRACTION,
            after_chunk=flush_usage,
        )
    if name == "structure":
        return StageDefinition(
            name=name,
            input_statuses=(S.TEXT_CORRECTED,),
            step=StructureStep(build_orchestrator(settings), artifacts, use_images=True),
            success_status=S.STRUCTURED,
            failure_status=S.FAILED_EXTRACTION,
        )
    if name == "enrich":
        return StageDefinition(
            name=name,
            input_statuses=(S.STRUCTURED,),
            step=EnrichStep(
                build_orchestrator(settings),
                artifacts,
                replace_margin=settings.replace_margin,
                use_images=True,
            ),
            success_flag=DocumentFlag.AI_ENRICHED,
            failure_flag=DocumentFlag.AI_ENRICH_FAILED,
            max_confidence=settings.enrich_below_confidence,
        )
    if name == "consolidate":
        return StageDefinition(
            name=name,
            input_statuses=(S.STRUCTURED,),
            step=ConsolidateStep(artifacts),
            success_status=S.CONSOLIDATED,
            failure_status=S.FAILED_CONSOLIDATION,
        )
    raise ConfigurationError(f"Unknown pipeline stage '{name}'. Choose from: {list(STAGE_NAMES)}")
