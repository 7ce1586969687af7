from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    app_name: str = "PaperDesk"
    app_version: str = "1.0.0"
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://paperdesk:paperdesk@db:5432/paperdesk"

    # Auth
    secret_key: str = "CHANGE_ME"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    # Bootstrap signatory, created at startup when no signatory exists
    first_signatory_email: str = "signatory@example.com"
    first_signatory_password: str = "CHANGE_ME"
    first_signatory_name: str = "Official Signatory"

    # MinIO
    minio_endpoint: str = "minio:9000"
    minio_root_user: str = "paperdesk"
    minio_root_password: str = "CHANGE_ME"
    minio_bucket: str = "paperdesk-files"
    minio_use_ssl: bool = False
    minio_url_expire_hours: int = 1

    # Uploads
    max_upload_mb: int = 10
    allowed_upload_types: list[str] = [
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
    ]

    # Endorsement
    esign_authority_id: str = "AUTHORITY-001"
    esign_default_signatory_name: str = "Official Signatory"
    # accepting_user: credit the signatory who accepted the request
    # any_authority: credit the first active user holding an authority role
    esign_authority_resolution: Literal["accepting_user", "any_authority"] = "accepting_user"

    # CORS
    backend_cors_origins: list[str] = ["http://localhost", "http://localhost:5173"]

    model_config = {"env_file": ".env", "case_sensitive": False}


settings = Settings()
