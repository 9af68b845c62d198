from __future__ import annotations

from datetime import timedelta
from typing import Optional

from flask import Flask, current_app

from .errors import EncodingError, InvalidInput, TransportError
from .storage import RedisStorage, Storage


EXTENSION_KEY = "oauth_storage"


class OAuthStorage:
    """Flask extension exposing a ``Storage`` to the authorization server.

    The storage is built from ``app.config`` unless one is passed in,
    which is how tests hand over an in-process Redis.
    """

    def __init__(self, app: Optional[Flask] = None, storage: Optional[Storage] = None) -> None:
        self._storage = storage
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        storage = self._storage
        if storage is None:
            storage = RedisStorage.from_url(
                app.config["REDIS_URL"],
                socket_timeout=app.config.get("REDIS_SOCKET_TIMEOUT"),
                max_connections=app.config.get("REDIS_MAX_CONNECTIONS"),
                token_lifetime=timedelta(days=app.config.get("OAUTH_TOKEN_LIFETIME_DAYS", 7)),
                max_chain_depth=app.config.get("OAUTH_MAX_CHAIN_DEPTH", 8),
                atomic_writes=app.config.get("OAUTH_ATOMIC_WRITES", True),
            )
        app.extensions[EXTENSION_KEY] = storage
        _register_error_handlers(app)
        app.logger.info("OAuth storage ready (%s)", type(storage).__name__)

    @property
    def storage(self) -> Storage:
        return current_storage()


def current_storage() -> Storage:
    """Return the storage registered on the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]


def _register_error_handlers(app: Flask) -> None:
    """Map storage failures that escape a view to HTTP responses."""

    @app.errorhandler(TransportError)
    def handle_transport_error(error):  # type: ignore[unused-argument]
        app.logger.error("OAuth storage unavailable: %s", error)
        return "Storage unavailable", 503

    @app.errorhandler(InvalidInput)
    @app.errorhandler(EncodingError)
    def handle_bad_payload(error):  # type: ignore[unused-argument]
        app.logger.warning("Rejected OAuth storage payload: %s", error)
        return "Bad request", 400
