from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "statements"
    db_username: str = "statements"
    db_password: str = "secret"
    db_table: str = "submission_records"

    object_store_backend: str = "s3"
    object_store_bucket: str = "financial-statements"
    object_store_root: str = "/app/files"
    aws_region: str = "us-east-1"
    aws_endpoint_url: str = ""

    events_queue_url: str = ""
    parser_request_queue_url: str = ""
    parser_completed_queue_url: str = ""
    parser_failed_queue_url: str = ""
    queue_wait_seconds: int = 10
    queue_batch_size: int = 10

    worker_threads: int = 4
    poll_interval_seconds: int = 5

    page_counter_engine: str = "pdfplumber"

    transform_service_url: str = ""
    template_service_url: str = ""
    http_timeout_seconds: int = 30

    # Run the publish/marker tail of the completion handler even when the
    # submission ended up FAILED.
    publish_on_failure: bool = True
