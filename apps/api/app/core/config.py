from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    database_url: str
    jwt_secret_key: str = "your-secret-key-change-in-production"  # Default for development
    jwt_algorithm: str = "HS256"

    # Comma-separated, e.g. "http://localhost:3000,https://dashboard.example.com"
    cors_origins: str = ""

    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "text"

    # Worksheets older than this are moved to ARCHIVED by /worksheets/archive-old
    archive_retention_days: int = 30

    class Config:
        env_file = ".env"

settings = Settings()
