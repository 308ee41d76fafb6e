"""Configuration settings for the document redaction API."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Azure Document Intelligence (OCR)
    azure_docintel_endpoint: str = ""
    azure_docintel_key: str = ""
    ocr_poll_interval: float = 1.0
    ocr_max_poll_attempts: int = 120
    ocr_max_wait_seconds: float = 300.0

    # Azure AI Language (language detection + PII)
    azure_language_endpoint: str = ""
    azure_language_key: str = ""
    ner_chunk_size: int = 5000
    language_sample_size: int = 1000

    # PDF renderer service (redaction + signature image model)
    pdf_renderer_url: str = ""
    signature_model_enabled: bool = True
    signature_model_timeout: float = 300.0

    # Redaction
    whitelist_path: Optional[str] = None
    max_batch_size: int = 10
    max_file_size_mb: int = 50

    # CORS settings
    cors_origins: str = "*"

    # Rate limiting
    rate_limit: str = "100/minute"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    central_log_url: str = ""
    central_log_token: str = ""
    service_name: str = "pdf-redaction"

    @property
    def max_file_size_bytes(self) -> int:
        """Maximum file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def pipeline_kwargs(self) -> dict:
        """Keyword arguments for ``pii_redaction.build_pipeline``."""
        return dict(
            document_intelligence_endpoint=self.azure_docintel_endpoint,
            document_intelligence_key=self.azure_docintel_key,
            ocr_poll_interval=self.ocr_poll_interval,
            ocr_max_poll_attempts=self.ocr_max_poll_attempts,
            ocr_max_wait_seconds=self.ocr_max_wait_seconds,
            language_endpoint=self.azure_language_endpoint,
            language_key=self.azure_language_key,
            ner_chunk_size=self.ner_chunk_size,
            language_sample_size=self.language_sample_size,
            renderer_url=self.pdf_renderer_url,
            signature_model_enabled=self.signature_model_enabled,
            signature_model_timeout=self.signature_model_timeout,
            whitelist_path=self.whitelist_path,
            max_batch_size=self.max_batch_size,
        )


# Global settings instance
settings: Optional[Settings] = None


def load_settings() -> Settings:
    """Load settings from environment variables and .env file."""
    global settings
    settings = Settings()
    return settings


def get_settings() -> Settings:
    """Get the global settings instance, loading if necessary."""
    global settings
    if settings is None:
        settings = load_settings()
    return settings
