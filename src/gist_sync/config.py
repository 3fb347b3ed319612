"""Runtime settings for gist-sync.

Reads GitHub and sync settings from CLI args, environment variables,
.env files, the YAML config file, and the token saved in the group store.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config >
    group store token > Built-in defaults

Environment variables:
    GITHUB_TOKEN: GitHub personal access token with the ``gist`` scope
    GIST_SYNC_API_URL: GitHub API base URL (default: https://api.github.com)
    GIST_SYNC_STORE: Group store file (default: ~/.gist-sync-config.json)
    GIST_SYNC_DEBOUNCE: Debounce delay in seconds (default: 1.0)
    GIST_SYNC_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from .config_schema import UnifiedConfig

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_DEBOUNCE_SECONDS = 1.0


def default_store_path() -> Path:
    return Path.home() / ".gist-sync-config.json"


@dataclass
class Settings:
    token: str = ""
    api_url: str = DEFAULT_API_URL
    store_path: Path = field(default_factory=default_store_path)
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    timeout: float = 60.0
    debug: bool = False


def validate_settings(settings: Settings) -> None:
    """Validate settings values and raise ValueError if invalid.

    Args:
        settings: Settings instance to validate.

    Raises:
        ValueError: If the API URL is malformed or the debounce delay is
            not positive.
    """
    settings.api_url = settings.api_url.strip()

    if not settings.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{settings.api_url}': must start with http:// or https://"
        )
    if not urlparse(settings.api_url).hostname:
        raise ValueError(
            f"Invalid API URL '{settings.api_url}': URL must include a hostname"
        )
    settings.api_url = settings.api_url.removesuffix("/")

    if settings.debounce_seconds <= 0:
        raise ValueError(
            f"Invalid debounce delay {settings.debounce_seconds}: must be positive"
        )


def require_token(settings: Settings) -> str:
    """Return the configured token or raise a ValueError with a hint."""
    if not settings.token.strip():
        raise ValueError(
            "GitHub token not configured. Run `gist-sync config` "
            "or set GITHUB_TOKEN."
        )
    return settings.token.strip()


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_settings(
    token: str | None = None,
    api_url: str | None = None,
    store_path: str | None = None,
    debug: bool = False,
    unified: UnifiedConfig | None = None,
) -> Settings:
    """Resolve settings with unified precedence.

    The caller is responsible for calling ``load_dotenv()`` first so that
    .env values are visible through ``os.getenv()``.  The token saved in
    the group store is the last fallback; the caller applies it once the
    store path is known.

    Args:
        token: Token from the command line.
        api_url: API base URL from the command line.
        store_path: Group store path from the command line.
        debug: Debug flag from the command line.
        unified: Parsed YAML config (``build_config()`` result).

    Returns:
        Validated Settings instance.

    Raises:
        ValueError: If a numeric environment value is malformed or
            validation fails.
    """
    yaml_cfg = unified or UnifiedConfig()

    final_token = (
        token
        or os.getenv("GITHUB_TOKEN")
        or yaml_cfg.github.token
        or ""
    )

    final_api_url = (
        api_url
        or os.getenv("GIST_SYNC_API_URL")
        or yaml_cfg.github.api_url
        or DEFAULT_API_URL
    )

    raw_store = (
        store_path
        or os.getenv("GIST_SYNC_STORE")
        or yaml_cfg.sync.store_path
    )
    final_store = (
        Path(raw_store).expanduser() if raw_store else default_store_path()
    )

    debounce_raw = os.getenv("GIST_SYNC_DEBOUNCE")
    if debounce_raw is not None:
        try:
            final_debounce = float(debounce_raw)
        except ValueError:
            raise ValueError(
                f"Invalid GIST_SYNC_DEBOUNCE '{debounce_raw}': must be a number of seconds"
            ) from None
    else:
        final_debounce = yaml_cfg.sync.debounce_seconds

    if debug:
        final_debug = True
    else:
        final_debug = bool(_get_bool_env("GIST_SYNC_DEBUG"))

    settings = Settings(
        token=final_token.strip(),
        api_url=final_api_url,
        store_path=final_store,
        debounce_seconds=final_debounce,
        timeout=yaml_cfg.github.timeout,
        debug=final_debug,
    )
    validate_settings(settings)
    return settings
