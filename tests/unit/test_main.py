from unittest.mock import MagicMock, patch

import pytest

from lawpipe.config.settings import Settings
from lawpipe.main import main, run
from lawpipe.pipeline.errors import ConfigurationError
from lawpipe.stages.engine import ChunkReport


def _settings(**overrides: object) -> Settings:
    return Settings(**overrides)  # type: ignore[arg-type]


class TestRun:
    def test_discover_seeds_range(self) -> None:
        settings = _settings(
            pipeline_stage="discover",
            discover_doc_type="decret",
            discover_year=2021,
            discover_first_number=3,
            discover_last_number=5,
        )
        with (
            patch("lawpipe.main.DocumentRepository") as repo_cls,
            patch("lawpipe.main.seed_documents") as seed,
        ):
            assert run(settings) == 0
        args = seed.call_args.args
        assert args[0] is repo_cls.return_value
        assert args[2:4] == ("decret", 2021)
        assert list(args[4]) == [3, 4, 5]

    def test_targeted_run_uses_run_once(self) -> None:
        settings = _settings(pipeline_stage="ocr", target_document_id="loi-2024-15")
        with (
            patch("lawpipe.main.DocumentRepository"),
            patch("lawpipe.main.build_stage"),
            patch("lawpipe.main.StageWorker") as worker_cls,
        ):
            worker_cls.return_value.run_once.return_value = ChunkReport(
                stage="ocr", claimed=1, succeeded=1, applied=1
            )
            assert run(settings) == 0
        worker_cls.return_value.run_once.assert_called_once_with("loi-2024-15")
        worker_cls.return_value.run.assert_not_called()

    def test_targeted_run_not_eligible(self) -> None:
        settings = _settings(pipeline_stage="ocr", target_document_id="loi-2024-15")
        with (
            patch("lawpipe.main.DocumentRepository"),
            patch("lawpipe.main.build_stage"),
            patch("lawpipe.main.StageWorker") as worker_cls,
        ):
            worker_cls.return_value.run_once.return_value = ChunkReport(stage="ocr")
            assert run(settings) == 1

    def test_poll_loop(self) -> None:
        settings = _settings(pipeline_stage="fix")
        with (
            patch("lawpipe.main.DocumentRepository"),
            patch("lawpipe.main.build_stage") as build,
            patch("lawpipe.main.StageWorker") as worker_cls,
        ):
            assert run(settings) == 0
        assert build.call_args.args[1] == "fix"
        worker_cls.return_value.run.assert_called_once_with()


class TestMain:
    def test_configuration_error_exits_nonzero_and_closes_pool(self) -> None:
        with (
            patch("lawpipe.main.init_pool"),
            patch("lawpipe.main.apply_schema"),
            patch("lawpipe.main.close_pool") as close_pool,
            patch("lawpipe.main.run", side_effect=ConfigurationError("bad patterns")),
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 2
        close_pool.assert_called_once_with()

    def test_success_exits_zero(self) -> None:
        with (
            patch("lawpipe.main.init_pool") as init_pool,
            patch("lawpipe.main.apply_schema"),
            patch("lawpipe.main.close_pool"),
            patch("lawpipe.main.run", return_value=0),
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 0
        assert isinstance(init_pool.call_args.args[0], Settings)


def test_worker_gets_built_runner() -> None:
    runner = MagicMock()
    with (
        patch("lawpipe.main.DocumentRepository"),
        patch("lawpipe.main.build_stage", return_value=runner),
        patch("lawpipe.main.StageWorker") as worker_cls,
    ):
        run(_settings(pipeline_stage="ocr"))
    assert worker_cls.call_args.args[0] is runner
