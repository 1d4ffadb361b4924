import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


class Settings(BaseModel):
    database_url: Optional[str] = None
    database_sslmode: str = "require"
    database_ssl_root_cert: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_pool_recycle: int = 1800
    database_echo: bool = False
    database_auto_create: bool = False

    upload_dir: str = "./uploads"
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    openai_api_key: Optional[str] = None
    openai_transcription_model: str = "whisper-1"
    aws_region: str = "us-east-1"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_session_token: Optional[str] = None
    bedrock_model_id: str = "mistral.mistral-large-2402-v1:0"
    ai_timeout_seconds: int = 60

    allowed_origins: List[str] = []
    api_prefix: str = "/api"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        raw_origins = os.getenv("ALLOWED_ORIGINS", "")
        allowed_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            database_sslmode=os.getenv("DATABASE_SSLMODE", "require") or "require",
            database_ssl_root_cert=os.getenv("DATABASE_SSL_ROOT_CERT"),
            database_pool_size=int(os.getenv("DATABASE_POOL_SIZE", 5)),
            database_max_overflow=int(os.getenv("DATABASE_MAX_OVERFLOW", 10)),
            database_pool_timeout=int(os.getenv("DATABASE_POOL_TIMEOUT", 30)),
            database_pool_recycle=int(os.getenv("DATABASE_POOL_RECYCLE", 1800)),
            database_echo=_env_flag("DATABASE_ECHO"),
            database_auto_create=_env_flag("DATABASE_AUTO_CREATE"),
            upload_dir=os.getenv("UPLOAD_DIR", "./uploads"),
            max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_transcription_model=os.getenv("OPENAI_TRANSCRIPTION_MODEL", "whisper-1"),
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            aws_session_token=os.getenv("AWS_SESSION_TOKEN"),
            bedrock_model_id=os.getenv("BEDROCK_MODEL_ID", "mistral.mistral-large-2402-v1:0"),
            ai_timeout_seconds=int(os.getenv("AI_TIMEOUT_SECONDS", 60)),
            allowed_origins=allowed_origins,
            api_prefix=os.getenv("API_PREFIX", "/api").rstrip("/"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


# Create a single, shared instance for the whole application to use
settings = Settings.from_env()
