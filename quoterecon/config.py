"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Central configuration for the quote reconciliation service."""

    # OpenAI (extraction adapter)
    openai_api_key: str = Field(default="", description="OpenAI API key; empty disables AI extraction")
    openai_vision_model: str = Field(
        default="gpt-4o", description="Vision model for image and scanned-PDF quotes"
    )
    openai_text_model: str = Field(
        default="gpt-4.1", description="Model for PDF quotes with a text layer"
    )
    extraction_timeout_seconds: float = Field(
        default=90.0, description="Timeout for a single extraction call (no retry)"
    )
    extraction_max_tokens: int = Field(default=4000, description="Max completion tokens")
    extraction_max_chars: int = Field(
        default=60000, description="PDF text truncation limit sent to the model"
    )
    pdf_render_dpi: int = Field(default=150, description="DPI for rendering scanned PDF pages")
    pdf_max_rendered_pages: int = Field(
        default=5, description="Max scanned PDF pages sent to the vision model"
    )

    # Reconciliation
    default_markup_percent: float = Field(
        default=25.0, description="Markup applied when the supplier has none configured"
    )
    price_tolerance: float = Field(
        default=0.10, description="Price-over-target tolerance for per-result discrepancies"
    )
    project_price_tolerance: float = Field(
        default=0.15, description="Price-over-target tolerance for the project mismatch list"
    )
    total_discrepancy_tolerance: float = Field(
        default=1.0, description="Allowed difference between quote total and sum of lines"
    )
    default_currency: str = Field(default="CAD", description="Currency when the quote has none")

    # Storage
    storage_base_path: str = Field(default="data/", description="Base path for file storage")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False}


# Singleton instance
settings = Settings()
