from __future__ import annotations

from datetime import datetime, timedelta, timezone

# Retention of access tokens and refresh mappings, counted from created_at.
TOKEN_LIFETIME = timedelta(days=7)


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_epoch(moment: datetime) -> int:
    return int(as_utc(moment).timestamp())


def from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def authorize_expires_at(created_at: datetime, expires_in: int) -> datetime:
    """Authorization codes live for exactly ``expires_in`` seconds."""
    return as_utc(created_at) + timedelta(seconds=int(expires_in))


def token_expires_at(created_at: datetime, lifetime: timedelta = TOKEN_LIFETIME) -> datetime:
    """Access tokens and refresh mappings are kept for ``lifetime`` after creation."""
    return as_utc(created_at) + lifetime
