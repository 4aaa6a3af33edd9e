"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Outbound fax identity
    service_fax_number: str = "+81-3-0000-0000"

    # Support contact printed on apology faxes
    support_email: str = "help@faxi.jp"
    support_phone: str = "+81-3-1234-5678"

    # Storage
    sqlite_db_path: str = "data/fax_engine.db"

    # Media download
    media_download_timeout_s: float = 30.0

    # Context recovery
    context_recovery_window_days: int = 7

    # Worker
    worker_concurrency: int = 1

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {"env_file": ".env", "env_prefix": "FAX_"}
