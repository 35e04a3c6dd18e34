from unittest.mock import MagicMock, patch

import pytest

from lawpipe.config.settings import Settings
from lawpipe.database.models import CorrectionEntry
from lawpipe.pipeline.artifacts import ArtifactStore
from lawpipe.pipeline.errors import ConfigurationError
from lawpipe.pipeline.status import DocumentFlag, ProcessingStatus
from lawpipe.repair.scanner import FixScanner
from lawpipe.stages.engine import StageEngine
from lawpipe.correction.speller import SpellerInitializationError
from lawpipe.stages.factory import STAGE_NAMES, build_speller, build_stage

S = ProcessingStatus


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        pdf_root=str(tmp_path / "pdfs"),
        images_root=str(tmp_path / "images"),
        text_root=str(tmp_path / "ocr"),
        json_root=str(tmp_path / "articles"),
        ocr_engine="pdfplumber",
        groq_api_key="",
        spellcheck_enabled=False,
    )


@pytest.fixture()
def correction_repo():  # type: ignore[no-untyped-def]
    with patch("lawpipe.stages.factory.CorrectionRepository") as repo_cls:
        repo = repo_cls.return_value
        repo.seed_curated.return_value = 0
        repo.find_all.return_value = [
            CorrectionEntry(error_found="Articie", correction_text="Article")
        ]
        yield repo


class TestBuildStage:
    @pytest.mark.parametrize("name", [n for n in STAGE_NAMES if n not in ("fix", "correct")])
    def test_builds_engine(self, settings: Settings, store, name: str) -> None:
        runner = build_stage(settings, name, store)
        assert isinstance(runner, StageEngine)
        assert runner.name == name

    def test_builds_fix_scanner(self, settings: Settings, store) -> None:
        runner = build_stage(settings, "fix", store)
        assert isinstance(runner, FixScanner)
        assert runner.name == "fix"

    def test_unknown_stage(self, settings: Settings, store) -> None:
        with pytest.raises(ConfigurationError, match="Unknown pipeline stage"):
            build_stage(settings, "publish", store)

    def test_unknown_ocr_engine(self, settings: Settings, store) -> None:
        settings.ocr_engine = "abbyy"
        with pytest.raises(ConfigurationError, match="Unknown OCR engine"):
            build_stage(settings, "ocr", store)

    def test_unknown_ai_mode(self, settings: Settings, store) -> None:
        settings.ai_mode = "magic"
        with pytest.raises(ConfigurationError, match="Unknown AI mode"):
            build_stage(settings, "structure", store)

    def test_missing_patterns(self, settings: Settings, store) -> None:
        settings.patterns_path = "/nonexistent/patterns.json"
        with pytest.raises(ConfigurationError, match="patterns"):
            build_stage(settings, "structure", store)


class TestCorrectStage:
    def test_seeds_and_loads_dictionary(self, settings: Settings, store, correction_repo) -> None:
        runner = build_stage(settings, "correct", store)

        assert isinstance(runner, StageEngine)
        seeded = correction_repo.seed_curated.call_args.args[0]
        assert seeded and all(not e.correction_is_automatic for e in seeded)
        correction_repo.find_all.assert_called_once_with()

    def test_usage_is_flushed_after_each_chunk(
        self, settings: Settings, store, correction_repo, make_record
    ) -> None:
        runner = build_stage(settings, "correct", store)
        record = make_record(status=S.OCR_EXTRACTED)
        artifacts = ArtifactStore.from_settings(settings)
        path = artifacts.write_text(artifacts.text_path(record), "Articie 1er")
        store.add(record.with_changes(text_path=str(path)))

        report = runner.run_chunk()

        assert report.succeeded == 1
        usage = correction_repo.flush_usage.call_args.args[0]
        assert [(e.error_found, delta) for e, delta in usage] == [("articie", 1)]


class TestBuildSpeller:
    def test_disabled(self, settings: Settings) -> None:
        assert build_speller(settings) is None

    def test_languagetool(self, settings: Settings) -> None:
        settings.spellcheck_enabled = True
        settings.languagetool_url = "http://languagetool:8010"
        with patch("lawpipe.stages.factory.LanguageToolSpeller") as speller_cls:
            speller = build_speller(settings)
        assert speller is speller_cls.return_value
        speller_cls.assert_called_once_with("fr", "http://languagetool:8010")

    def test_start_failure_is_configuration_error(self, settings: Settings, store) -> None:
        settings.spellcheck_enabled = True
        with (
            patch(
                "lawpipe.stages.factory.LanguageToolSpeller",
                side_effect=SpellerInitializationError("No java install detected"),
            ),
            patch("lawpipe.stages.factory.CorrectionRepository"),
        ):
            with pytest.raises(ConfigurationError, match="java"):
                build_stage(settings, "correct", store)


class TestEnrichStage:
    def test_enrich_claims_only_low_confidence(self, settings: Settings, store, make_record) -> None:
        runner = build_stage(settings, "enrich", store)
        store.add(make_record(1, status=S.STRUCTURED, confidence=0.95))
        store.add(
            make_record(
                2,
                status=S.STRUCTURED,
                confidence=0.5,
                flags=frozenset({DocumentFlag.AI_ENRICHED}),
            )
        )
        with patch.object(runner, "_run_step", MagicMock()) as run_step:
            assert runner.run_chunk().is_empty
        run_step.assert_not_called()
