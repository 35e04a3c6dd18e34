import threading

from lawpipe.config.settings import Settings
from lawpipe.logging.logger import Log
from lawpipe.repair.scanner import FixScanner
from lawpipe.stages.engine import ChunkReport, StageEngine


class StageWorker:
    """Poll loop: run chunk -> sleep when idle -> repeat.

    Cancellation is honoured between chunks only; a chunk in flight always
    finishes (or is abandoned as a whole when its write fails).
    """

    def __init__(
        self,
        runner: StageEngine | FixScanner,
        settings: Settings,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._runner = runner
        self._settings = settings
        self._stop_event = stop_event or threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self, max_chunks: int | None = None) -> None:
        """Main poll loop. Runs until stopped or interrupted.

        If max_chunks is set, stop after that many non-empty chunks (for testing).
        """
        Log.info(f"Worker started for stage '{self._runner.name}'")
        chunks_done = 0
        try:
            while not self._stop_event.is_set():
                if max_chunks is not None and chunks_done >= max_chunks:
                    break
                report = self._try_run_chunk()
                if report is not None and not report.is_empty:
                    chunks_done += 1
                    continue
                Log.debug("No work available, sleeping")
                self._stop_event.wait(self._settings.poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")
        Log.info(f"Worker for stage '{self._runner.name}' stopped after {chunks_done} chunks")

    def run_once(self, document_id: str | None = None) -> ChunkReport | None:
        """Run a single chunk, optionally narrowed to one document."""
        return self._try_run_chunk(document_id)

    def _try_run_chunk(self, document_id: str | None = None) -> ChunkReport | None:
        """Run one chunk. A failed chunk write is logged and retried next poll."""
        try:
            return self._runner.run_chunk(document_id)
        except Exception as exc:
            Log.warning(f"Chunk for stage '{self._runner.name}' abandoned, will retry: {exc}")
            return None
