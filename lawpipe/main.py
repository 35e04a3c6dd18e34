import sys

from lawpipe.config.settings import Settings
from lawpipe.database.connection import apply_schema, close_pool, init_pool
from lawpipe.database.repositories.document_repository import DocumentRepository
from lawpipe.logging.logger import Log
from lawpipe.pipeline.errors import ConfigurationError
from lawpipe.source.discovery import seed_documents
from lawpipe.stages.factory import build_stage
from lawpipe.stages.worker import StageWorker


def run(settings: Settings) -> int:
    """Build the configured stage and run it. Returns the process exit code."""
    store = DocumentRepository()

    if settings.pipeline_stage == "discover":
        numbers = range(settings.discover_first_number, settings.discover_last_number + 1)
        seed_documents(
            store,
            settings.source_url_template,
            settings.discover_doc_type,
            settings.discover_year,
            numbers,
        )
        return 0

    runner = build_stage(settings, settings.pipeline_stage, store)
    worker = StageWorker(runner, settings)
    if settings.target_document_id:
        report = worker.run_once(settings.target_document_id)
        if report is None or report.is_empty:
            Log.warning(
                f"Document {settings.target_document_id} is not eligible "
                f"for stage '{settings.pipeline_stage}'"
            )
            return 1
        return 0 if report.failed == 0 else 1

    worker.run()
    return 0


def main() -> None:
    """Entry point: initialize pool -> build stage -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        apply_schema()
        exit_code = run(settings)
    except ConfigurationError as exc:
        Log.error(f"Configuration error: {exc}")
        exit_code = 2
    finally:
        close_pool()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
