import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    app_name: str = os.getenv("UNILIB_APP_NAME", "University Library System")

    # Database
    database_url: str = os.getenv("UNILIB_DB", "sqlite:///./unilibrary.db")
    log_level: str = os.getenv("UNILIB_LOG", "INFO")

    # Security
    secret_key: str = os.getenv("UNILIB_SECRET_KEY", "change-this-secret-in-production")
    jwt_algorithm: str = os.getenv("UNILIB_JWT_ALGORITHM", "HS256")
    jwt_expiration_minutes: int = int(os.getenv("UNILIB_JWT_EXPIRATION_MINUTES", "1440"))

    # Circulation
    default_loan_days: int = int(os.getenv("UNILIB_DEFAULT_LOAN_DAYS", "14"))
    fine_per_day: float = float(os.getenv("UNILIB_FINE_PER_DAY", "0.50"))

    # Presence sweep
    auto_exit_enabled: bool = _flag("UNILIB_AUTO_EXIT_ENABLED", "true")
    auto_exit_interval_seconds: int = int(os.getenv("UNILIB_AUTO_EXIT_INTERVAL_SECONDS", "60"))

    # Biometrics
    fingerprint_retention_days: int = int(os.getenv("UNILIB_FINGERPRINT_RETENTION_DAYS", "365"))


settings = Settings()
