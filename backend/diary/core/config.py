from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "couple-diary"
    app_env: str = "development"

    database_url: str = "sqlite:////data/diary.sqlite"

    # Demo mode: in-memory SQLite seeded with sample rows + in-memory media bucket
    demo_mode: bool = False

    # JWT
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 24 * 30

    # Participants
    user_him_secret: str = "change-me-him"
    user_her_secret: str = "change-me-her"
    user_him_name: str = "Him"
    user_her_name: str = "Her"

    cookie_secure: bool = True

    # Media storage: "minio" or "memory"
    storage_backend: str = "minio"
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_secure: bool = False
    minio_public_url: str = "http://localhost:9000"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
