from __future__ import annotations

from typing import Optional


class StorageError(Exception):
    """Base class for every error raised by the storage layer.

    Carries the entity class (``"client"``, ``"authorize"``, ``"access"``,
    ``"refresh"``) and the key that was being read or written so callers
    can log something useful without parsing the message.
    """

    default_message = "storage error"

    def __init__(
        self,
        entity: Optional[str] = None,
        key: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        self.entity = entity
        self.key = key
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.entity and self.key is not None:
            return f"{self.message} ({self.entity}={self.key!r})"
        return self.message


class NotFound(StorageError):
    """The record is absent or its TTL has elapsed."""

    default_message = "record not found"


class ClientNotFound(NotFound):
    default_message = "client not found"

    def __init__(self, key: str) -> None:
        super().__init__("client", key)


class AuthorizeCodeNotFound(NotFound):
    default_message = "authorize code not found"

    def __init__(self, key: str) -> None:
        super().__init__("authorize", key)


class AccessTokenNotFound(NotFound):
    default_message = "access token not found"

    def __init__(self, key: str) -> None:
        super().__init__("access", key)


class RefreshTokenNotFound(NotFound):
    default_message = "refresh token not found"

    def __init__(self, key: str) -> None:
        super().__init__("refresh", key)


class InvalidInput(StorageError):
    default_message = "invalid input"


class ClientIsNil(InvalidInput):
    default_message = "client must not be nil"


class EncodingError(StorageError):
    """User data could not be turned into a storable string."""

    default_message = "user data is not encodable"


class TransportError(StorageError):
    """Communication with Redis failed.

    The underlying ``redis.RedisError`` is available as ``__cause__``.
    """

    default_message = "redis transport error"


class ExpiryNotSet(TransportError):
    """The record was written but setting its TTL failed.

    The record is durable and never expires until it is removed or
    rewritten. Callers should treat this as degraded, not failed.
    """

    default_message = "record written but expiry could not be set"
