from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "lawpipe"
    db_username: str = "lawpipe"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    pipeline_stage: str = "ocr"
    target_document_id: str | None = None
    chunk_size: int = 10
    poll_interval_seconds: int = 5
    worker_ceiling: int = 8

    pdf_root: str = "data/pdfs"
    images_root: str = "data/images"
    text_root: str = "data/ocr"
    json_root: str = "data/articles"

    source_url_template: str = "https://sgg.gouv.bj/doc/{doc_type}/{document_id}.pdf"
    http_timeout_seconds: int = 30
    http_user_agent: str = "lawpipe/0.1"
    min_pdf_bytes: int = 1024

    discover_doc_type: str = "loi"
    discover_year: int = 2024
    discover_first_number: int = 1
    discover_last_number: int = 0

    ocr_engine: str = "pymupdf_ocr"
    ocr_language: str = "fra"
    render_dpi: int = 200

    corrections_csv_path: str | None = None
    correction_promotion_threshold: int = 5
    spellcheck_enabled: bool = True
    spellcheck_language: str = "fr"
    languagetool_url: str = ""
    spellcheck_cache_size: int = 50_000

    patterns_path: str | None = None
    signatories_path: str | None = None
    expected_chars_per_article: int = 1500

    ai_min_parallel_units: int = 4
    ai_mode: str = "correct_ocr"
    ai_chunk_size: int = 6000
    ai_chunk_overlap: int = 200
    ai_temperature: float = 0.1

    ollama_url: str = "http://localhost:11434"
    ollama_model_name: str = "gemma3n:latest"
    ollama_models_required: str = "gemma3n:latest"
    ollama_timeout_seconds: int = 300

    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model_name: str = "llama-3.3-70b-versatile"
    groq_models_required: str = ""
    groq_timeout_seconds: int = 60

    confidence_pattern_low: float = 0.5
    confidence_pattern_high: float = 0.7
    confidence_corrected_low: float = 0.7
    confidence_corrected_high: float = 0.8
    confidence_ai_corrected_ocr: float = 0.9
    confidence_ai_full: float = 0.95
    pattern_accept_confidence: float = 1.0
    enrich_below_confidence: float = 0.8
    replace_margin: float = 0.1

    fix_min_confidence: float = 0.3
    max_repair_attempts: int = 3
    fix_stuck_after_hours: float = 24.0
