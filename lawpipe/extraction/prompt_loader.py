from pathlib import Path

from lawpipe.pipeline.errors import ConfigurationError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template by file name.

    Args:
        name: Template file name, e.g. "correct_ocr_prompt.txt".
        prompt_dir: Directory holding the templates.
                    Defaults to the bundled prompts directory.

    Returns:
        The raw template string with placeholders.

    Raises:
        ConfigurationError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to load prompt template: {exc}") from exc


def load_json_schema(path: Path | None = None) -> str:
    """Load the law document JSON schema.

    Raises:
        ConfigurationError: if the file cannot be read.
    """
    if path is None:
        path = _DEFAULT_PROMPT_DIR / "law_document_schema.json"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to load JSON schema: {exc}") from exc
