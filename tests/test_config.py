import pytest

from redis_oauth_storage import RedisStorage, create_storage
from redis_oauth_storage.config import (
    BaseConfig,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config_class,
)


@pytest.mark.parametrize(
    "env, expected",
    [
        ("production", ProductionConfig),
        ("prod", ProductionConfig),
        ("testing", TestingConfig),
        ("development", DevelopmentConfig),
        ("anything-else", DevelopmentConfig),
    ],
)
def test_get_config_class_from_app_env(monkeypatch, env, expected):
    monkeypatch.setenv("APP_ENV", env)
    assert get_config_class() is expected


def test_validate_requires_redis_url():
    class MissingUrl(BaseConfig):
        REDIS_URL = None

    with pytest.raises(RuntimeError, match="REDIS_URL"):
        MissingUrl.validate()


def test_validate_prefers_mapping_values():
    with pytest.raises(RuntimeError, match="OAUTH_MAX_CHAIN_DEPTH"):
        TestingConfig.validate({"REDIS_URL": "redis://x", "OAUTH_MAX_CHAIN_DEPTH": -1})


def test_validate_rejects_non_positive_lifetime():
    class ZeroLifetime(TestingConfig):
        OAUTH_TOKEN_LIFETIME_DAYS = 0

    with pytest.raises(RuntimeError, match="OAUTH_TOKEN_LIFETIME_DAYS"):
        ZeroLifetime.validate()


def test_create_storage_applies_config():
    class ShortLived(TestingConfig):
        OAUTH_TOKEN_LIFETIME_DAYS = 2
        OAUTH_MAX_CHAIN_DEPTH = 3
        OAUTH_ATOMIC_WRITES = False

    storage = create_storage(ShortLived)
    assert isinstance(storage, RedisStorage)
    assert storage.token_lifetime.days == 2
    assert storage.max_chain_depth == 3
    assert storage.atomic_writes is False
    storage.pool.disconnect()


def test_production_reads_atomic_writes_from_environment(monkeypatch):
    import importlib

    from redis_oauth_storage import config as config_module

    monkeypatch.setenv("OAUTH_ATOMIC_WRITES", "false")
    try:
        reloaded = importlib.reload(config_module)
        assert reloaded.ProductionConfig.OAUTH_ATOMIC_WRITES is False
    finally:
        monkeypatch.delenv("OAUTH_ATOMIC_WRITES")
        importlib.reload(config_module)
