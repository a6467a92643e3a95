from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database settings
    DATABASE_URL: str

    # JWT settings (tokens are issued by the external auth service)
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 30

    # Logging
    LOG_LEVEL: str = "INFO"

    # Storage settings
    STORAGE_BACKEND: str = "local"  # local | s3 (future)
    STORAGE_BASE_PATH: str = "app/storage/data"
    MAX_UPLOAD_SIZE_MB: int = 50
    ALLOWED_SPREADSHEET_EXTENSIONS: list[str] = [".xlsx", ".xls", ".csv"]
    ALLOWED_SPREADSHEET_CONTENT_TYPES: list[str] = [
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
        "application/vnd.ms-excel",  # .xls
        "text/csv",
        "application/csv",
        "text/comma-separated-values",
    ]

    # Ingestion settings
    INGESTION_BATCH_SIZE: int = 1000
    TYPE_INFERENCE_SAMPLE_SIZE: int = 100
    PREVIEW_ROW_COUNT: int = 5
    PROCESSING_TIMEOUT_SECONDS: int = 300
    MAX_CONCURRENT_PROCESSING: int = 4
    SHUTDOWN_DRAIN_SECONDS: int = 30

    # Analytics settings
    CHART_DATA_DEFAULT_LIMIT: int = 1000
    CHART_DATA_MAX_LIMIT: int = 10000

    # "env_file": ".env" reads variables from a .env file when present
    # "extra": "ignore" drops variables that have no matching field
    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
