import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()  # loads .env for local dev


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _env_name_set(name: str) -> frozenset[str]:
    """Comma-separated names, normalised to lower-case for matching."""
    raw = os.getenv(name, "")
    return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    env: str = os.getenv("ENV", "local")
    service_name: str = os.getenv("SERVICE_NAME", "salescycle")

    # AccuLynx
    acculynx_api_key: str = os.getenv("ACCULYNX_API_KEY", "")
    acculynx_base_url: str = os.getenv("ACCULYNX_BASE_URL", "https://api.acculynx.com/api/v2")
    acculynx_timeout: float = float(os.getenv("ACCULYNX_TIMEOUT", "20"))

    # Sales cycle engine
    max_jobs_per_milestone: int = _env_int("MAX_JOBS_PER_MILESTONE", 500)
    max_users: int = _env_int("MAX_USERS", 100)
    enrichment_batch_size: int = _env_int("ENRICHMENT_BATCH_SIZE", 5)
    inactive_reps: frozenset[str] = _env_name_set("INACTIVE_REPS")
    report_timezone: str = os.getenv("REPORT_TIMEZONE", "UTC")
    dedup_jobs: bool = _env_bool("DEDUP_JOBS")

settings = Settings()
