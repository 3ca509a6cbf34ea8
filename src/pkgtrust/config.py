"""Runtime settings read from the environment."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# LOG_LEVEL accepts the numeric verbosity levels or a logging level name
VERBOSITY_LEVELS = {
    "0": logging.ERROR,
    "1": logging.INFO,
    "2": logging.DEBUG,
}

DEFAULT_INTERNAL_DOMAIN = "internal.acme.com"
DEFAULT_PACKAGE_VERSION = "1.0.0"


def parse_log_level(value: str | None) -> int:
    """Map a LOG_LEVEL value to a logging level. Unknown values mean ERROR."""
    if not value:
        return logging.ERROR
    value = value.strip()
    if value in VERBOSITY_LEVELS:
        return VERBOSITY_LEVELS[value]
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.ERROR


@dataclass
class Settings:
    """Everything the CLI needs from the environment, read once at startup."""

    github_token: str | None = None
    log_level: int = logging.ERROR
    log_file: Path | None = None
    internal_domain: str = DEFAULT_INTERNAL_DOMAIN
    quota_floor: int | None = None
    default_package_version: str = DEFAULT_PACKAGE_VERSION
    db_params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ.
            dotenv: Load a .env file into os.environ first.
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = dict(os.environ)

        quota_floor = environ.get("QUOTA_FLOOR", "").strip()
        log_file = environ.get("LOG_FILE", "").strip()

        db_params = {}
        for env_name, param in (
            ("DB_HOST", "host"),
            ("DB_PORT", "port"),
            ("DB_USER", "user"),
            ("DB_PASSWORD", "password"),
            ("DB_NAME", "dbname"),
        ):
            if environ.get(env_name):
                db_params[param] = environ[env_name]
        if environ.get("DB_SSL_CA"):
            db_params["sslmode"] = "verify-full"
            db_params["sslrootcert"] = environ["DB_SSL_CA"]

        return cls(
            github_token=environ.get("GITHUB_TOKEN") or None,
            log_level=parse_log_level(environ.get("LOG_LEVEL")),
            log_file=Path(log_file) if log_file else None,
            internal_domain=environ.get("INTERNAL_DOMAIN", DEFAULT_INTERNAL_DOMAIN),
            quota_floor=int(quota_floor) if quota_floor else None,
            default_package_version=(
                environ.get("DEFAULT_PACKAGE_VERSION") or DEFAULT_PACKAGE_VERSION
            ),
            db_params=db_params,
        )

    @property
    def database_enabled(self) -> bool:
        """A database sink is configured when host and database name are set."""
        return "host" in self.db_params and "dbname" in self.db_params


def configure_logging(settings: Settings) -> None:
    """Set up root logging from settings."""
    handlers: list[logging.Handler] = []
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file, mode="a"))
    else:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT, handlers=handlers, force=True)
    # Keep request lines out of the output
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if not settings.github_token:
        logger.warning("GITHUB_TOKEN is not set; using the unauthenticated GitHub budget")
