import os
from dataclasses import dataclass
from typing import List, Optional

# Database
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "recipebox")

# Auth
SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 7 * 24 * 60))

# Server
PORT = int(os.getenv("PORT", 5000))


def cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]


class MailerConfigError(RuntimeError):
    pass


@dataclass
class MailSettings:
    user: str
    password: str
    admin_email: str
    host: str = "smtp.gmail.com"
    port: int = 587
    timeout: float = 60.0

    @classmethod
    def from_env(cls) -> "MailSettings":
        """Read relay settings at call time so credential changes need no restart."""
        user: Optional[str] = os.getenv("EMAIL_USER")
        password: Optional[str] = os.getenv("EMAIL_PASSWORD")
        if not user or not password:
            raise MailerConfigError(
                "Email credentials not configured. Please set EMAIL_USER and "
                "EMAIL_PASSWORD environment variables."
            )
        return cls(
            user=user,
            password=password,
            admin_email=os.getenv("ADMIN_EMAIL") or user,
            host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            port=int(os.getenv("SMTP_PORT", 587)),
            timeout=float(os.getenv("SMTP_TIMEOUT", 60)),
        )
