from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .expiration import as_utc, authorize_expires_at
from .serializer import UserData


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Client:
    """A registered OAuth client.

    ``user_data`` is whatever the caller attached on write (see
    ``serializer``); after a load it is the stored string.
    """

    id: str
    secret: str = ""
    redirect_uri: str = ""
    user_data: UserData = None


@dataclass
class AuthorizeData:
    """An authorization code issued mid-flow."""

    code: str
    client: Optional[Client]
    expires_in: int = 0
    scope: str = ""
    redirect_uri: str = ""
    state: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    user_data: UserData = None

    def expire_at(self) -> datetime:
        return authorize_expires_at(self.created_at, self.expires_in)

    def is_expired_at(self, now: datetime) -> bool:
        return self.expire_at() <= as_utc(now)


@dataclass
class AccessData:
    """An access token and the records it was derived from.

    ``authorize_data`` and ``access_data`` (the previous token in the
    chain) are best-effort on load: they are ``None`` whenever the
    referenced record could not be loaded, for whatever reason.
    """

    access_token: str
    client: Optional[Client]
    refresh_token: str = ""
    expires_in: int = 0
    scope: str = ""
    redirect_uri: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    user_data: UserData = None
    authorize_data: Optional[AuthorizeData] = None
    access_data: Optional["AccessData"] = None

    def expire_at(self) -> datetime:
        return authorize_expires_at(self.created_at, self.expires_in)

    def is_expired_at(self, now: datetime) -> bool:
        return self.expire_at() <= as_utc(now)
