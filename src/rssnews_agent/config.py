"""Run configuration, read once from the environment at startup."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_SOURCE_DIR = "rss-source"
DEFAULT_NEWS_DIR = "news"
DEFAULT_WORK_BACKGROUND = "[AI工程师，Cursor/GitHub Copilot，开发与上线AI功能，软件/互联网]"
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_MAX_AGENT_STEPS = 4


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Config:
    """Immutable settings for one run."""

    api_key: str
    model: str
    source_dir: str
    work_background: str
    news_dir: Path
    base_url: str | None = None
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    max_agent_steps: int = DEFAULT_MAX_AGENT_STEPS


def load_config(
    source_dir: str | None = None,
    work_background: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Build the run configuration.

    Command-line values win; the environment is the fallback for both.

    Raises:
        ConfigError: If the API key or model identifier is missing, or the
            fetch timeout is not a positive number.
    """
    env = os.environ if environ is None else environ

    api_key = _required(env, "ANTHROPIC_API_KEY")
    model = _required(env, "ANTHROPIC_MODEL")

    raw_timeout = env.get("RSS_FETCH_TIMEOUT", "").strip()
    try:
        fetch_timeout = float(raw_timeout) if raw_timeout else DEFAULT_FETCH_TIMEOUT
    except ValueError:
        raise ConfigError(f"RSS_FETCH_TIMEOUT must be a number, got {raw_timeout!r}")
    if fetch_timeout <= 0:
        raise ConfigError("RSS_FETCH_TIMEOUT must be positive")

    return Config(
        api_key=api_key,
        model=model,
        base_url=env.get("ANTHROPIC_BASE_URL", "").strip() or None,
        source_dir=(source_dir or "").strip() or env.get("SOURCE_DIR", "").strip() or DEFAULT_SOURCE_DIR,
        work_background=(
            (work_background or "").strip()
            or env.get("WORK_BACKGROUND", "").strip()
            or DEFAULT_WORK_BACKGROUND
        ),
        news_dir=Path(env.get("RSS_NEWS_DIR", "").strip() or DEFAULT_NEWS_DIR),
        fetch_timeout=fetch_timeout,
    )


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigError(f"Missing required env var: {name}")
    return value
