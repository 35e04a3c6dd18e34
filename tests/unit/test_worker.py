import threading
from unittest.mock import MagicMock, patch

from lawpipe.stages.engine import ChunkReport
from lawpipe.stages.worker import StageWorker


def _make_worker() -> tuple[StageWorker, MagicMock, threading.Event]:
    """Create a StageWorker with a mocked runner."""
    runner = MagicMock()
    runner.name = "ocr"
    settings = MagicMock(poll_interval_seconds=1)
    stop_event = threading.Event()
    worker = StageWorker(runner, settings, stop_event)
    return worker, runner, stop_event


def _report(claimed: int) -> ChunkReport:
    return ChunkReport(stage="ocr", claimed=claimed, succeeded=claimed, applied=claimed)


class TestWorkerDispatch:
    def test_runs_chunks_until_max(self) -> None:
        worker, runner, _ = _make_worker()
        runner.run_chunk.return_value = _report(2)

        worker.run(max_chunks=3)

        assert runner.run_chunk.call_count == 3
        runner.run_chunk.assert_called_with(None)

    def test_run_once_passes_document_id(self) -> None:
        worker, runner, _ = _make_worker()
        runner.run_chunk.return_value = _report(1)

        report = worker.run_once("loi-2024-15")

        runner.run_chunk.assert_called_once_with("loi-2024-15")
        assert report is not None and report.claimed == 1


class TestWorkerSleep:
    def test_waits_when_chunk_empty(self) -> None:
        worker, runner, stop_event = _make_worker()
        runner.run_chunk.side_effect = [_report(0), KeyboardInterrupt]

        with patch.object(stop_event, "wait") as mock_wait:
            worker.run()

        mock_wait.assert_called_once_with(1)

    def test_failed_chunk_is_retried_after_wait(self) -> None:
        worker, runner, stop_event = _make_worker()
        runner.run_chunk.side_effect = [RuntimeError("db down"), _report(1)]

        with patch.object(stop_event, "wait") as mock_wait:
            worker.run(max_chunks=1)

        assert runner.run_chunk.call_count == 2
        mock_wait.assert_called_once_with(1)

    def test_run_once_swallows_chunk_failure(self) -> None:
        worker, runner, _ = _make_worker()
        runner.run_chunk.side_effect = RuntimeError("db down")
        assert worker.run_once() is None


class TestWorkerShutdown:
    def test_handles_keyboard_interrupt(self) -> None:
        worker, runner, _ = _make_worker()
        runner.run_chunk.side_effect = KeyboardInterrupt
        worker.run()  # Should not raise

    def test_stop_before_run_skips_work(self) -> None:
        worker, runner, _ = _make_worker()
        worker.stop()
        worker.run()
        runner.run_chunk.assert_not_called()

    def test_stop_between_chunks(self) -> None:
        worker, runner, _ = _make_worker()

        def run_and_stop(document_id):  # type: ignore[no-untyped-def]
            worker.stop()
            return _report(1)

        runner.run_chunk.side_effect = run_and_stop
        worker.run()
        assert runner.run_chunk.call_count == 1
