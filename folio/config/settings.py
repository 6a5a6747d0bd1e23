from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Database (Postgres). DATABASE_URL wins over the individual parts.
    database_url: Optional[str] = None
    database_host: str = "postgres"
    database_port: int = 5432
    database_name: str = "portfolio_db"
    database_user: str = "postgres"
    database_password: Optional[str] = None
    database_pool_size: int = 20
    database_pool_timeout: int = 10  # seconds to wait for a pooled connection
    database_pool_recycle: int = 30  # seconds before an idle connection is recycled
    database_connect_retries: int = 10
    migrations_dir: Optional[str] = None  # defaults to folio/database/migrations

    # Object storage (MinIO / S3)
    minio_endpoint: str = "minio:9000"
    minio_access_key: str = "minioaccess"
    minio_secret_key: str = "miniosecret"
    minio_use_ssl: bool = False
    minio_region: str = "us-east-1"
    use_in_memory_storage: bool = False
    max_upload_bytes: int = 50 * 1024 * 1024

    # Auth
    jwt_secret: str = ""
    jwt_issuer: str = "portfolio-local-backend"
    jwt_expires_hours: int = 24
    password_hash_rounds: int = 12  # shared by /auth/signup and the create_admin script
    signup_enabled: bool = True

    # Mail (fallbacks when site_settings has no credentials)
    gmail_user: Optional[str] = None
    gmail_app_password: Optional[str] = None
    resend_api_key: Optional[str] = None

    # Translation functions
    openai_model: str = "gpt-3.5-turbo"

    # Public base URL of this API, used when building object URLs
    api_public_url: str = "http://localhost:3000"

    # App
    app_name: str = "portfolio-local-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "*"
    rate_limit: str = "1000/15minute"  # slowapi format
    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        password = f":{self.database_password}" if self.database_password else ""
        return (
            f"postgresql+psycopg2://{self.database_user}{password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
