"""Paths, tunables and environment-driven settings for quickapply.

Paths are fixed at import (QUICKAPPLY_DIR overrides the base). Resolvers read
the environment at call time so that load_env() in the CLI bootstrap is
visible to them.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from quickapply.errors import FatalConfig

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

APP_DIR = Path(os.environ.get("QUICKAPPLY_DIR", Path.home() / ".quickapply")).expanduser()
ENV_PATH = APP_DIR / ".env"
LOG_DIR = APP_DIR / "logs"
COOKIE_PATH = APP_DIR / "cookies.json"
PERSONA_PATH = APP_DIR / "persona.yaml"
RESULTS_PATH = LOG_DIR / "results.jsonl"

# ---------------------------------------------------------------------------
# Tunables (milliseconds unless the key says otherwise)
# ---------------------------------------------------------------------------

DEFAULTS: dict[str, int | float] = {
    "max_steps": 15,
    "stall_threshold": 3,
    "settle_ms": 1000,
    "form_wait_ms": 5000,
    "advance_wait_ms": 10000,
    "element_wait_ms": 15000,
    "list_wait_ms": 30000,
    "page_load_ms": 80000,
    "probe_wait_ms": 500,
    "field_pause_ms": 300,
    "field_attempts": 3,
    "generation_retries": 3,
    "rate_limit_base_wait": 5,  # seconds
    "busy_poll_interval": 5,  # seconds
    "context_size": 5,
    "job_retries": 3,
    "job_retry_delay": 3,  # seconds
    "between_jobs_min_ms": 2000,
    "between_jobs_max_ms": 4000,
    "jitter_min_ms": 500,
    "jitter_max_ms": 1500,
    "lazy_load_wait_ms": 2000,
    "max_tokens": 150,
    "temperature": 1.3,
    "type_delay_ms": 50,
}

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def ensure_dirs() -> None:
    """Create the application directories if they do not exist yet."""
    for path in (APP_DIR, LOG_DIR):
        path.mkdir(parents=True, exist_ok=True)


def load_env() -> None:
    """Load ~/.quickapply/.env, then ./.env, without overriding the process env."""
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH, override=False)
    load_dotenv(Path.cwd() / ".env", override=False)


def _env_get(env: Mapping[str, str], key: str) -> str:
    value = env.get(key, "")
    if value is None:
        return ""
    return str(value).strip()


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = _env_get(env, key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("Ignoring non-integer %s=%r, using %d.", key, raw, default)
        return default


# ---------------------------------------------------------------------------
# Browser / run settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BrowserConfig:
    headless: bool
    slow_mo: int
    default_timeout: int
    user_agent: str = USER_AGENT


def resolve_browser_config(env: Mapping[str, str] | None = None) -> BrowserConfig:
    """Headless unless BROWSER_HEADLESS=false; slow-mo and timeout in ms."""
    env_map = env if env is not None else os.environ
    return BrowserConfig(
        headless=_env_get(env_map, "BROWSER_HEADLESS").lower() != "false",
        slow_mo=_env_int(env_map, "BROWSER_SLOW_MO", 50),
        default_timeout=_env_int(env_map, "BROWSER_DEFAULT_TIMEOUT", 30000),
    )


@dataclass(frozen=True)
class RunConfig:
    search_url: str
    username: str
    password: str


def resolve_run_config(
    env: Mapping[str, str] | None = None,
    search_url: str | None = None,
) -> RunConfig:
    """Resolve the job search URL and site credentials.

    The search URL may come from the command line; otherwise JOBS_URL is
    required. Credentials are optional here and only checked when the
    login form is actually shown.
    """
    env_map = env if env is not None else os.environ
    url = (search_url or "").strip() or _env_get(env_map, "JOBS_URL")
    if not url:
        raise FatalConfig("JOBS_URL", "Pass --url or set JOBS_URL to the job search page.")
    return RunConfig(
        search_url=url,
        username=_env_get(env_map, "SITE_USERNAME"),
        password=_env_get(env_map, "SITE_PASSWORD"),
    )


# ---------------------------------------------------------------------------
# Persona seeding
# ---------------------------------------------------------------------------


class Persona(BaseModel):
    """Fixed system messages that seed every generation context."""

    system: list[str] = Field(default_factory=list)


def load_persona(path: Path | None = None) -> Persona:
    """Load persona.yaml; a missing file means no persona seeding."""
    persona_path = path or PERSONA_PATH
    if not persona_path.exists():
        return Persona()

    try:
        data = yaml.safe_load(persona_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise FatalConfig(str(persona_path), f"Invalid YAML: {e}") from e

    try:
        persona = Persona.model_validate(data)
    except ValidationError as e:
        raise FatalConfig(str(persona_path), f"Invalid persona: {e}") from e

    if len(persona.system) >= int(DEFAULTS["context_size"]):
        raise FatalConfig(
            str(persona_path),
            f"At most {int(DEFAULTS['context_size']) - 1} system messages fit in the generation context.",
        )
    log.info("Loaded %d persona message(s) from %s", len(persona.system), persona_path)
    return persona
