import csv
from pathlib import Path

from lawpipe.database.models import CorrectionEntry
from lawpipe.logging.logger import Log
from lawpipe.pipeline.errors import ConfigurationError

_RESOURCE_DIR = Path(__file__).parent / "resources"


def load_curated_corrections(path: Path | None = None) -> list[CorrectionEntry]:
    """Load curated `wrong,correct` pairs.

    Blank lines and `#` comments are ignored; malformed rows are logged and
    skipped.

    Raises:
        ConfigurationError: if the file cannot be read.
    """
    if path is None:
        path = _RESOURCE_DIR / "corrections.csv"
    try:
        with path.open(encoding="utf-8", newline="") as handle:
            rows = list(csv.reader(handle))
    except OSError as exc:
        raise ConfigurationError(f"Failed to load corrections: {exc}") from exc

    entries: list[CorrectionEntry] = []
    for line_number, row in enumerate(rows, start=1):
        if not row or not "".join(row).strip() or row[0].lstrip().startswith("#"):
            continue
        if len(row) != 2 or not row[0].strip() or not row[1].strip():
            Log.warning(f"Invalid correction at {path.name}:{line_number}: {row}")
            continue
        entries.append(
            CorrectionEntry(
                error_found=row[0],
                correction_text=row[1],
                correction_is_automatic=False,
            )
        )
    return entries
