from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    LEASEFLOW_DB_URL: str = "sqlite+aiosqlite:///./leaseflow.db"
    LOG_LEVEL: str = "INFO"

    # --- Minimal admin auth (API key) ---
    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Business rules ---
    LEASE_CAS_MAX_ATTEMPTS: int = 3
    ALLOW_DUPLICATE_APPLICATIONS: bool = False
    LEASE_DOCUMENT_CONTENT_TYPES: list[str] = ["application/pdf"]

    # --- Blob storage (lease documents, maintenance photos) ---
    BLOB_BACKEND: str = "local"  # local|http
    BLOB_LOCAL_DIR: str = "./blobs"
    BLOB_HTTP_BASE_URL: str | None = None
    BLOB_HTTP_TOKEN: str | None = None

    # --- Outbound HTTP resilience ---
    HTTP_TIMEOUT_S: float = 20.0
    HTTP_MAX_RETRIES: int = 2
    HTTP_BACKOFF_BASE_S: float = 0.5
    HTTP_RATE_LIMIT_RPS: float = 5.0
    HTTP_CIRCUIT_FAIL_THRESHOLD: int = 5
    HTTP_CIRCUIT_RESET_S: float = 60.0

    # --- Outbox / webhooks ---
    OUTBOX_BATCH_SIZE: int = 50
    OUTBOX_MAX_ATTEMPTS: int = 10
    OUTBOX_WEBHOOK_RPS: float = 2.0
    OUTBOX_BACKOFF_BASE_SECONDS: float = 5.0
    OUTBOX_BACKOFF_CAP_SECONDS: float = 3600.0  # 1 hour cap

    # --- Scheduler tuning ---
    SCHED_DISPATCH_INTERVAL_MINUTES: int = 5


settings = Settings()
