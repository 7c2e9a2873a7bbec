"""Runtime settings for Plant Guesser.

Game rules (rank points, suggestion limits) are module constants next to the
code that uses them. Everything that varies between deployments lives here
and can be overridden from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

# Repository root (src/plantguesser/config.py -> repo)
BASE_DIR = Path(__file__).resolve().parent.parent.parent

DEFAULT_DATA_DIR = BASE_DIR / "data"
DEFAULT_API_BASE = "https://api.inaturalist.org/v1"
DEFAULT_BATCH_SIZE = 30
DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_GAMES = 500


def _env_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Deployment settings.

    Attributes:
        data_dir: Directory holding the static reference JSON tables.
        api_base: Base URL of the iNaturalist v1 API.
        batch_size: Observations fetched per buffer refill.
        request_timeout: Timeout in seconds for every HTTP request.
        log_level: Name of the root logging level.
        secret_key: Flask session signing key.
        cookie_secure: Send the session cookie over HTTPS only.
        max_games: Games the web server keeps before evicting the least
            recently used one.
    """

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    api_base: str = DEFAULT_API_BASE
    batch_size: int = DEFAULT_BATCH_SIZE
    request_timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"
    secret_key: str = "plantguesser-dev-secret-change-me"
    cookie_secure: bool = False
    max_games: int = DEFAULT_MAX_GAMES

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            data_dir=Path(env.get("PLANTGUESSER_DATA_DIR", str(defaults.data_dir))),
            api_base=env.get("PLANTGUESSER_API_BASE", defaults.api_base).rstrip("/"),
            batch_size=int(env.get("PLANTGUESSER_BATCH_SIZE", defaults.batch_size)),
            request_timeout=float(env.get("PLANTGUESSER_TIMEOUT", defaults.request_timeout)),
            log_level=env.get("PLANTGUESSER_LOG_LEVEL", defaults.log_level).upper(),
            secret_key=env.get("FLASK_SECRET_KEY", defaults.secret_key),
            cookie_secure=_env_bool(env.get("COOKIE_SECURE"), defaults.cookie_secure),
            max_games=max(1, int(env.get("PLANTGUESSER_MAX_GAMES", defaults.max_games))),
        )
