"""Configuration loading from .env files."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

FACET_STRATEGIES = ("per_film", "batched")
FACET_ERROR_POLICIES = ("abort", "degrade")


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # Database
    db_name: str = "pagila"
    db_host: str = "localhost"
    db_user: str = "postgres"
    db_password: str = "password"
    db_port: int = 5432
    db_schema: str = "public"

    # Connection pool
    pool_min_size: int = 2
    pool_max_size: int = 10

    # Query defaults, passed per call by the API surface
    default_page_size: int = 100
    category_scan_limit: int = 1000

    # Facet enrichment
    facet_concurrency: int = 10
    facet_strategy: str = "per_film"
    facet_errors: str = "abort"

    # OpenTelemetry (optional)
    otel_endpoint: str = ""
    otel_headers: str = ""
    otel_service_name: str = "bluebox-catalog"

    @property
    def otel_enabled(self) -> bool:
        """True when OTel tracing should be initialized."""
        return bool(self.otel_endpoint)

    def validate(self):
        """Raise ValueError if required config is missing or invalid."""
        if self.pool_min_size < 1:
            raise ValueError("POOL_MIN_SIZE must be >= 1")
        if self.pool_max_size < self.pool_min_size:
            raise ValueError("POOL_MAX_SIZE must be >= POOL_MIN_SIZE")
        if self.default_page_size < 1:
            raise ValueError("DEFAULT_PAGE_SIZE must be >= 1")
        if self.category_scan_limit < 1:
            raise ValueError("CATEGORY_SCAN_LIMIT must be >= 1")
        if self.facet_concurrency < 1:
            raise ValueError("FACET_CONCURRENCY must be >= 1")
        if self.facet_strategy not in FACET_STRATEGIES:
            raise ValueError(f"FACET_STRATEGY must be one of {', '.join(FACET_STRATEGIES)}")
        if self.facet_errors not in FACET_ERROR_POLICIES:
            raise ValueError(f"FACET_ERRORS must be one of {', '.join(FACET_ERROR_POLICIES)}")


def load_config(env_file: str | None = None) -> Config:
    """Load configuration from environment variables and optional .env file.

    Args:
        env_file: Path to .env file. If None, searches for .env in the
                  project root.
    """
    if env_file:
        load_dotenv(env_file)
    else:
        project_root = Path(__file__).resolve().parent.parent.parent
        dotenv_path = project_root / ".env"
        if dotenv_path.exists():
            load_dotenv(dotenv_path)

    return Config(
        db_name=os.getenv("DB_NAME", "pagila"),
        db_host=os.getenv("DB_HOST", "localhost"),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "password"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_schema=os.getenv("DB_SCHEMA", "public"),
        pool_min_size=int(os.getenv("POOL_MIN_SIZE", "2")),
        pool_max_size=int(os.getenv("POOL_MAX_SIZE", "10")),
        default_page_size=int(os.getenv("DEFAULT_PAGE_SIZE", "100")),
        category_scan_limit=int(os.getenv("CATEGORY_SCAN_LIMIT", "1000")),
        facet_concurrency=int(os.getenv("FACET_CONCURRENCY", "10")),
        facet_strategy=os.getenv("FACET_STRATEGY", "per_film"),
        facet_errors=os.getenv("FACET_ERRORS", "abort"),
        otel_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
        otel_headers=os.getenv("OTEL_EXPORTER_OTLP_HEADERS", ""),
        otel_service_name=os.getenv("OTEL_SERVICE_NAME", "bluebox-catalog"),
    )
