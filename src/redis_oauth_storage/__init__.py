import logging
from datetime import timedelta

from .config import BaseConfig, get_config_class
from .errors import (
    AccessTokenNotFound,
    AuthorizeCodeNotFound,
    ClientIsNil,
    ClientNotFound,
    EncodingError,
    ExpiryNotSet,
    InvalidInput,
    NotFound,
    RefreshTokenNotFound,
    StorageError,
    TransportError,
)
from .extension import OAuthStorage, current_storage
from .models import AccessData, AuthorizeData, Client
from .serializer import Empty, Raw, Renderable, Structured, decode_structured
from .storage import RedisStorage, Storage


__all__ = [
    "AccessData",
    "AccessTokenNotFound",
    "AuthorizeCodeNotFound",
    "AuthorizeData",
    "Client",
    "ClientIsNil",
    "ClientNotFound",
    "Empty",
    "EncodingError",
    "ExpiryNotSet",
    "InvalidInput",
    "NotFound",
    "OAuthStorage",
    "Raw",
    "RedisStorage",
    "RefreshTokenNotFound",
    "Renderable",
    "Storage",
    "StorageError",
    "Structured",
    "TransportError",
    "create_storage",
    "current_storage",
    "decode_structured",
]


def _configure_logging(config_class: type[BaseConfig]) -> None:
    """Configure logging from the LOG_LEVEL config value."""

    log_level_name = getattr(config_class, "LOG_LEVEL", "INFO")
    log_level = getattr(logging, str(log_level_name).upper(), logging.INFO)
    logging.basicConfig(level=log_level)
    logging.getLogger(__name__).setLevel(log_level)


def create_storage(config_class: type[BaseConfig] | None = None) -> RedisStorage:
    """Storage factory for use outside a Flask application."""

    if config_class is None:
        config_class = get_config_class()

    _configure_logging(config_class)
    config_class.validate()

    return RedisStorage.from_url(
        config_class.REDIS_URL,
        socket_timeout=config_class.REDIS_SOCKET_TIMEOUT,
        max_connections=config_class.REDIS_MAX_CONNECTIONS,
        token_lifetime=timedelta(days=config_class.OAUTH_TOKEN_LIFETIME_DAYS),
        max_chain_depth=config_class.OAUTH_MAX_CHAIN_DEPTH,
        atomic_writes=config_class.OAUTH_ATOMIC_WRITES,
    )
