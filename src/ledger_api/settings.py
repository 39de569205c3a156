"""Settings for the construction ledger API."""

from typing import Optional

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the construction ledger API.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) reads
    configuration values from environment variables and, during local development, a .env file.

    Environment variable names are treated case-insensitively; the canonical names used in this
    project are lowercase (database_url, jwt_secret, ...).
    """

    # Row store
    database_url: str
    """PostgreSQL DSN of the ledger database (required)."""

    # Auth provider tokens
    jwt_secret: str
    """Shared secret used to verify access tokens issued by the auth provider (required)."""

    jwt_algorithm: str = "HS256"
    """Signing algorithm of the access tokens."""

    jwt_audience: Optional[str] = "authenticated"
    """Expected `aud` claim. Set to empty to skip the audience check."""

    # Object storage for invoice attachments
    storage_url: Optional[str] = None
    """Base URL of the object storage REST endpoint (e.g. https://<project>.supabase.co)."""

    storage_service_key: Optional[str] = None
    """Service key sent as bearer token to the object storage endpoint."""

    storage_bucket: str = "invoice-attachments"
    """Bucket holding invoice attachments."""

    storage_max_upload_mb: int = 10
    """Largest accepted attachment, in megabytes."""

    # Invoice extraction (chat-completions style API)
    extraction_api_url: str = "https://api.deepseek.com/v1/chat/completions"
    """Chat-completions endpoint used for invoice transcription and field extraction."""

    extraction_api_key: Optional[str] = None
    """Bearer key for the extraction API."""

    extraction_text_model: str = "deepseek-coder"
    """Model used to turn invoice text into structured JSON."""

    extraction_vision_model: str = "deepseek-vision"
    """Model used to transcribe the uploaded document."""

    # Notification Settings (SMTP)
    smtp_host: Optional[str] = None
    """SMTP server hostname for invitation emails."""

    smtp_port: int = 587
    """SMTP server port (default: 587 for TLS)."""

    smtp_username: Optional[str] = None
    """SMTP authentication username."""

    smtp_password: Optional[str] = None
    """SMTP authentication password."""

    notification_from_email: str = "ledger-noreply@example.com"
    """From email address for notifications."""

    public_site_url: str = "http://localhost:5173"
    """Base URL of the web client, used to build join links."""

    # Business rules
    invitation_expiry_days: int = 7
    """Days an invitation stays valid after it is issued."""

    invoice_due_days: int = 30
    """Days between ingestion of an invoice and its due date."""

    collation_locale: str = ""
    """Locale used to sort contractor names; empty takes LC_ALL/LC_COLLATE/LANG from the environment."""

    log_level: str = "INFO"
    """Minimum level written to stdout."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
    )
