"""Runtime settings read from the environment (and an optional .env file)."""
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _int_env(name: str, default: int) -> int:
    # An empty assignment in .env (SMTP_PORT=) means "use the default"
    return int(os.getenv(name) or default)


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./quizroom.db")
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = _int_env("JWT_EXPIRE_MINUTES", 1440)
    reset_token_expire_minutes: int = _int_env("RESET_TOKEN_EXPIRE_MINUTES", 10)
    cors_origins: List[str] = field(default_factory=lambda: _split(os.getenv("CORS_ORIGINS", "*")))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    smtp_host: str = os.getenv("SMTP_HOST", "")
    smtp_port: int = _int_env("SMTP_PORT", 465)
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    mail_sender: str = os.getenv("MAIL_SENDER", "")


settings = Settings()
