import os

from dotenv import load_dotenv

load_dotenv()


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", "5000"))

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "sportsDb")

ACCESS_TOKEN_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

PAYMENT_SECRET_KEY = os.getenv("PAYMENT_SECRET_KEY", "")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["*"])


def validate_runtime_config() -> None:
    if APP_ENV.lower() != "production":
        return
    if ACCESS_TOKEN_SECRET == "change-me":
        raise RuntimeError("ACCESS_TOKEN_SECRET must be set in production.")
    if not PAYMENT_SECRET_KEY:
        raise RuntimeError("PAYMENT_SECRET_KEY must be set in production.")
