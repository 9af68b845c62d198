from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Iterator, Optional, TypeVar

import redis

from .errors import (
    AccessTokenNotFound,
    AuthorizeCodeNotFound,
    ClientIsNil,
    ClientNotFound,
    EncodingError,
    ExpiryNotSet,
    NotFound,
    RefreshTokenNotFound,
    StorageError,
    TransportError,
)
from .expiration import TOKEN_LIFETIME, from_epoch, to_epoch, token_expires_at
from .models import AccessData, AuthorizeData, Client
from .serializer import encode


logger = logging.getLogger(__name__)

CLIENT_PREFIX = "c:"
AUTHORIZE_PREFIX = "a:"
ACCESS_PREFIX = "t:"
REFRESH_PREFIX = "r:"

DEFAULT_MAX_CHAIN_DEPTH = 8

T = TypeVar("T")


class Storage:
    """Interface the OAuth protocol engine persists its entities through."""

    def clone(self) -> "Storage":
        return self

    def close(self) -> None:
        return None

    def create_client(self, client: Client) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def get_client(self, client_id: str) -> Client:  # pragma: no cover - interface
        raise NotImplementedError

    def update_client(self, client: Client) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def remove_client(self, client_id: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def save_authorize(self, data: AuthorizeData) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def load_authorize(self, code: str) -> AuthorizeData:  # pragma: no cover - interface
        raise NotImplementedError

    def remove_authorize(self, code: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def save_access(self, data: AccessData) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def load_access(self, token: str) -> AccessData:  # pragma: no cover - interface
        raise NotImplementedError

    def remove_access(self, token: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def load_refresh(self, token: str) -> AccessData:  # pragma: no cover - interface
        raise NotImplementedError

    def remove_refresh(self, token: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _int_field(fields: dict[str, str], name: str, entity: str, key: str) -> int:
    raw = fields.get(name) or "0"
    try:
        return int(raw)
    except ValueError as exc:
        raise StorageError(entity, key, f"corrupt {name} field {raw!r}") from exc


def _created_at(fields: dict[str, str], entity: str, key: str) -> datetime:
    seconds = _int_field(fields, "created_at", entity, key)
    try:
        return from_epoch(seconds)
    except (OverflowError, OSError, ValueError) as exc:
        raise StorageError(entity, key, f"corrupt created_at field {seconds!r}") from exc


class RedisStorage(Storage):
    """Redis-backed storage for clients, codes and tokens.

    Every record is a flat hash under a class-prefixed key (``c:``,
    ``a:``, ``t:``, ``r:``). Expiry relies on ``EXPIREAT`` so an expired
    record reads exactly like one that was never written.

    The pool is owned by the caller; each operation borrows a client
    bound to it for its own duration only.
    """

    def __init__(
        self,
        pool: redis.ConnectionPool,
        token_lifetime: timedelta = TOKEN_LIFETIME,
        max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
        atomic_writes: bool = True,
    ) -> None:
        if max_chain_depth < 0:
            raise ValueError("max_chain_depth must not be negative")
        self.pool = pool
        self.token_lifetime = token_lifetime
        self.max_chain_depth = max_chain_depth
        self.atomic_writes = atomic_writes

    @classmethod
    def from_url(
        cls,
        url: str,
        socket_timeout: Optional[float] = None,
        max_connections: Optional[int] = None,
        **options: Any,
    ) -> "RedisStorage":
        pool = redis.ConnectionPool.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            max_connections=max_connections,
        )
        return cls(pool, **options)

    @contextmanager
    def _connection(self, entity: str, key: str) -> Iterator[redis.Redis]:
        conn = redis.Redis(connection_pool=self.pool)
        try:
            yield conn
        except redis.ResponseError as exc:
            # The server answered: the command itself was refused, e.g. WRONGTYPE.
            logger.error("Redis rejected command for %s=%r: %s", entity, key, exc)
            raise StorageError(entity, key, f"redis rejected command: {exc}") from exc
        except redis.RedisError as exc:
            logger.error("Redis command failed for %s=%r: %s", entity, key, exc)
            raise TransportError(entity, key, f"redis transport error: {exc}") from exc
        finally:
            conn.close()

    @staticmethod
    def _read_hash(conn: redis.Redis, name: str) -> dict[str, str]:
        return {_text(k): _text(v) for k, v in conn.hgetall(name).items()}

    @staticmethod
    def _encode(data: Any, entity: str, key: str) -> str:
        try:
            return encode(data)
        except EncodingError as exc:
            exc.entity, exc.key = entity, key
            raise

    def _best_effort(self, load: Callable[[], T], entity: str, key: str, owner: str) -> Optional[T]:
        """Run ``load`` and return ``None`` instead of raising.

        Used for the optional parts of an access token; the discarded
        error is logged with the owning token.
        """

        try:
            return load()
        except NotFound:
            logger.warning("Access token %r references missing %s %r", owner, entity, key)
        except StorageError as exc:
            logger.warning(
                "Dropping %s %r while loading access token %r: %s", entity, key, owner, exc
            )
        return None

    # Clients

    def create_client(self, client: Client) -> None:
        data = self._encode(client.user_data, "client", client.id)
        with self._connection("client", client.id) as conn:
            conn.hset(
                CLIENT_PREFIX + client.id,
                mapping={
                    "secret": client.secret,
                    "redirect_uri": client.redirect_uri,
                    "data": data,
                },
            )

    def update_client(self, client: Client) -> None:
        self.create_client(client)

    def get_client(self, client_id: str) -> Client:
        with self._connection("client", client_id) as conn:
            fields = self._read_hash(conn, CLIENT_PREFIX + client_id)
        if not fields:
            raise ClientNotFound(client_id)
        return Client(
            id=client_id,
            secret=fields.get("secret", ""),
            redirect_uri=fields.get("redirect_uri", ""),
            user_data=fields.get("data", ""),
        )

    def remove_client(self, client_id: str) -> None:
        with self._connection("client", client_id) as conn:
            conn.delete(CLIENT_PREFIX + client_id)

    # Authorization codes

    def save_authorize(self, data: AuthorizeData) -> None:
        if data.client is None:
            raise ClientIsNil("authorize", data.code)
        extra = self._encode(data.user_data, "authorize", data.code)
        name = AUTHORIZE_PREFIX + data.code

        with self._connection("authorize", data.code) as conn:
            conn.hset(
                name,
                mapping={
                    "client": data.client.id,
                    "expires_in": int(data.expires_in),
                    "scope": data.scope,
                    "redirect_uri": data.redirect_uri,
                    "state": data.state,
                    "created_at": to_epoch(data.created_at),
                    "extra": extra,
                },
            )
            # The hash is already durable here; a failure below leaves it without a TTL.
            try:
                conn.expireat(name, to_epoch(data.expire_at()))
            except redis.RedisError as exc:
                logger.warning("Authorize code %r stored without expiry: %s", data.code, exc)
                raise ExpiryNotSet("authorize", data.code) from exc

    def load_authorize(self, code: str) -> AuthorizeData:
        with self._connection("authorize", code) as conn:
            fields = self._read_hash(conn, AUTHORIZE_PREFIX + code)
        if not fields:
            raise AuthorizeCodeNotFound(code)
        return AuthorizeData(
            code=code,
            client=self.get_client(fields.get("client", "")),
            expires_in=_int_field(fields, "expires_in", "authorize", code),
            scope=fields.get("scope", ""),
            redirect_uri=fields.get("redirect_uri", ""),
            state=fields.get("state", ""),
            created_at=_created_at(fields, "authorize", code),
            user_data=fields.get("extra", ""),
        )

    def remove_authorize(self, code: str) -> None:
        with self._connection("authorize", code) as conn:
            conn.delete(AUTHORIZE_PREFIX + code)

    # Access tokens

    def save_access(self, data: AccessData) -> None:
        """Write an access token and, if it has one, its refresh mapping.

        Both records go out in a single pipeline. With ``atomic_writes``
        the pipeline is a MULTI/EXEC transaction; without it a failure
        mid-flush can leave the refresh mapping without its token or
        the token without its mapping.
        """

        token = data.access_token
        if data.client is None:
            raise ClientIsNil("access", token)
        extra = self._encode(data.user_data, "access", token)

        previous = data.access_data.access_token if data.access_data is not None else ""
        authorize = data.authorize_data.code if data.authorize_data is not None else ""
        expire_at = to_epoch(token_expires_at(data.created_at, self.token_lifetime))

        with self._connection("access", token) as conn:
            with conn.pipeline(transaction=self.atomic_writes) as pipe:
                if data.refresh_token:
                    pipe.hset(REFRESH_PREFIX + data.refresh_token, mapping={"access": token})
                    pipe.expireat(REFRESH_PREFIX + data.refresh_token, expire_at)
                pipe.hset(
                    ACCESS_PREFIX + token,
                    mapping={
                        "client": data.client.id,
                        "authorize": authorize,
                        "previous": previous,
                        "refresh_token": data.refresh_token,
                        "expires_in": int(data.expires_in),
                        "scope": data.scope,
                        "redirect_uri": data.redirect_uri,
                        "created_at": to_epoch(data.created_at),
                        "extra": extra,
                    },
                )
                pipe.expireat(ACCESS_PREFIX + token, expire_at)
                pipe.execute()

    def load_access(self, token: str) -> AccessData:
        return self._load_access(token, 0)

    def _load_access(self, token: str, depth: int) -> AccessData:
        with self._connection("access", token) as conn:
            fields = self._read_hash(conn, ACCESS_PREFIX + token)
        if not fields:
            raise AccessTokenNotFound(token)

        # An unresolvable client means the record is corrupt.
        result = AccessData(
            access_token=token,
            client=self.get_client(fields.get("client", "")),
            refresh_token=fields.get("refresh_token", ""),
            expires_in=_int_field(fields, "expires_in", "access", token),
            scope=fields.get("scope", ""),
            redirect_uri=fields.get("redirect_uri", ""),
            created_at=_created_at(fields, "access", token),
            user_data=fields.get("extra", ""),
        )

        code = fields.get("authorize")
        if code:
            result.authorize_data = self._best_effort(
                lambda: self.load_authorize(code), "authorize", code, token
            )

        previous = fields.get("previous")
        if previous:
            if depth >= self.max_chain_depth:
                logger.warning(
                    "Token chain below %r not resolved: maximum depth %d reached",
                    token,
                    self.max_chain_depth,
                )
            else:
                result.access_data = self._best_effort(
                    lambda: self._load_access(previous, depth + 1), "access", previous, token
                )
        return result

    def remove_access(self, token: str) -> None:
        with self._connection("access", token) as conn:
            conn.delete(ACCESS_PREFIX + token)

    # Refresh tokens

    def load_refresh(self, token: str) -> AccessData:
        with self._connection("refresh", token) as conn:
            access = conn.hget(REFRESH_PREFIX + token, "access")
        if not access:
            raise RefreshTokenNotFound(token)
        return self.load_access(_text(access))

    def remove_refresh(self, token: str) -> None:
        with self._connection("refresh", token) as conn:
            conn.delete(REFRESH_PREFIX + token)
