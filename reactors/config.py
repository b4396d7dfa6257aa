import os
from typing import Any, Dict, List, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

DEFAULT_BASE_URL = "https://api.phantombuster.com/api/v2"


class ArgumentMapping(BaseModel):
    """
    How the post URL and session cookie are laid out in the agent's
    `argument` object. Agents differ; this is not discoverable from the API.
    """

    style: Literal["direct", "company"] = "direct"
    url_key: str = "postUrl"
    session_key: str = "sessionCookie"
    company_key: str = "companyUrl"
    extra: Dict[str, Any] = {}


class Settings(BaseModel):
    phantombuster_api_key: Optional[str] = None
    phantombuster_phantom_id: Optional[str] = None
    linkedin_session_cookie: Optional[str] = None
    phantombuster_base_url: str = DEFAULT_BASE_URL
    argument_mapping: ArgumentMapping = ArgumentMapping()
    poll_interval_seconds: float = 5.0
    poll_max_attempts: int = 60
    provider_timeout_seconds: float = 30.0
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    local_db_file: str = "reactors_db.json"
    log_file: str = "logging.jsonl"
    cors_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]


def load_argument_mapping(path: str) -> ArgumentMapping:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return ArgumentMapping(**data)


def _env(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


def load_settings() -> Settings:
    """Build Settings from the environment (and .env when present)."""
    load_dotenv()

    values: Dict[str, Any] = {
        "phantombuster_api_key": _env("PHANTOMBUSTER_API_KEY"),
        "phantombuster_phantom_id": _env("PHANTOMBUSTER_PHANTOM_ID"),
        "linkedin_session_cookie": _env("LINKEDIN_SESSION_COOKIE"),
        "supabase_url": _env("SUPABASE_URL"),
        "supabase_service_key": _env("SUPABASE_SERVICE_KEY") or _env("SUPABASE_ANON_KEY"),
    }
    optional = {
        "phantombuster_base_url": _env("PHANTOMBUSTER_BASE_URL"),
        "poll_interval_seconds": _env("POLL_INTERVAL_SECONDS"),
        "poll_max_attempts": _env("POLL_MAX_ATTEMPTS"),
        "provider_timeout_seconds": _env("PROVIDER_TIMEOUT_SECONDS"),
        "local_db_file": _env("LOCAL_DB_FILE"),
        "log_file": _env("LOG_FILE"),
    }
    values.update({k: v for k, v in optional.items() if v is not None})

    origins = _env("CORS_ORIGINS")
    if origins:
        values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

    mapping_path = _env("PHANTOM_ARGUMENT_MAPPING")
    if mapping_path:
        values["argument_mapping"] = load_argument_mapping(mapping_path)

    return Settings(**values)
