import os
from typing import Mapping

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in {"1", "true", "yes"}


class BaseConfig:
    """Base configuration shared by all environments."""

    # --- Redis connection ---
    REDIS_URL = os.environ.get("REDIS_URL")
    REDIS_SOCKET_TIMEOUT = float(os.environ.get("REDIS_SOCKET_TIMEOUT", "5"))
    REDIS_MAX_CONNECTIONS = int(os.environ.get("REDIS_MAX_CONNECTIONS", "50"))

    # --- Record retention ---
    # Access tokens and refresh mappings are kept this many days after creation.
    OAUTH_TOKEN_LIFETIME_DAYS = int(os.environ.get("OAUTH_TOKEN_LIFETIME_DAYS", "7"))

    # How many previous tokens a single access token load will follow.
    OAUTH_MAX_CHAIN_DEPTH = int(os.environ.get("OAUTH_MAX_CHAIN_DEPTH", "8"))

    # Write a token and its refresh mapping inside MULTI/EXEC. When false the
    # two records are only pipelined and may be written partially.
    OAUTH_ATOMIC_WRITES = _env_flag("OAUTH_ATOMIC_WRITES", "true")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls, config: Mapping[str, object] | None = None) -> None:
        """Validate that critical configuration values are present.

        ``config`` may be a Flask ``app.config`` or any mapping; values it
        holds take precedence over class attributes.
        """

        def lookup(name: str) -> object:
            if config is not None and name in config:
                return config[name]
            return getattr(cls, name, None)

        missing = [name for name in ("REDIS_URL",) if not lookup(name)]
        if missing:
            raise RuntimeError(
                f"Missing required configuration values: {', '.join(missing)}. "
                "Check your environment variables or .env file."
            )

        lifetime = lookup("OAUTH_TOKEN_LIFETIME_DAYS")
        if not isinstance(lifetime, int) or lifetime <= 0:
            raise RuntimeError("OAUTH_TOKEN_LIFETIME_DAYS must be a positive number of days.")

        depth = lookup("OAUTH_MAX_CHAIN_DEPTH")
        if not isinstance(depth, int) or depth < 0:
            raise RuntimeError("OAUTH_MAX_CHAIN_DEPTH must be zero or a positive integer.")


class DevelopmentConfig(BaseConfig):
    """Configuration for local development."""

    DEBUG = True
    REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")


class ProductionConfig(BaseConfig):
    """Configuration for production deployments."""

    DEBUG = False


class TestingConfig(BaseConfig):
    """Configuration used in unit tests.

    Tests inject an in-process Redis, so the URL is never dialled.
    """

    TESTING = True
    REDIS_URL = "redis://localhost:6379/15"
    OAUTH_TOKEN_LIFETIME_DAYS = 7
    OAUTH_MAX_CHAIN_DEPTH = 8
    OAUTH_ATOMIC_WRITES = True
    LOG_LEVEL = "DEBUG"


def get_config_class() -> type[BaseConfig]:
    """Select the appropriate configuration class from APP_ENV.

    Defaults to ``DevelopmentConfig`` when ``APP_ENV`` is not set.
    """

    env = os.environ.get("APP_ENV", "development").lower()
    if env in {"prod", "production"}:
        return ProductionConfig
    if env in {"test", "testing"}:
        return TestingConfig
    return DevelopmentConfig
