import json
import math

import pytest

from igdb.token_cache import AccessTokenCache, CredentialExchangeError


class Clock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class Exchange:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def test_token_reused_until_expiry():
    clock = Clock(1_000.0)
    exchange = Exchange(
        {"access_token": "abc", "expires_in": 3600},
        {"access_token": "def", "expires_in": 3600},
    )
    cache = AccessTokenCache(exchange, clock=clock)

    assert cache.get_token() == "abc"
    assert exchange.calls == 1

    clock.now = 1_000.0 + 3599
    assert cache.get_token() == "abc"
    assert cache.get_token() == "abc"
    assert exchange.calls == 1

    clock.now = 1_000.0 + 3601
    assert cache.get_token() == "def"
    assert exchange.calls == 2
    assert cache.exchange_count == 2


def test_token_is_stale_exactly_at_expiry():
    clock = Clock(0.0)
    exchange = Exchange({"access_token": "abc", "expires_in": 60})
    cache = AccessTokenCache(exchange, clock=clock)
    cache.get_token()

    clock.now = 60.0
    cache.get_token()
    assert exchange.calls == 2


def test_invalidate_forces_exchange():
    clock = Clock()
    exchange = Exchange(
        {"access_token": "first", "expires_in": 3600},
        {"access_token": "second", "expires_in": 3600},
    )
    cache = AccessTokenCache(exchange, clock=clock)

    assert cache.get_token() == "first"
    cache.invalidate()
    assert cache.credential.token is None
    assert cache.get_token() == "second"
    assert exchange.calls == 2


def test_missing_access_token_raises():
    cache = AccessTokenCache(Exchange({"expires_in": 3600}), clock=Clock())

    with pytest.raises(CredentialExchangeError):
        cache.get_token()
    assert cache.credential.token is None


@pytest.mark.parametrize("expires_in", [None, "soon", -5, 0])
def test_unusable_expiry_means_single_use(expires_in):
    clock = Clock()
    exchange = Exchange({"access_token": "abc", "expires_in": expires_in})
    cache = AccessTokenCache(exchange, clock=clock)

    assert cache.get_token() == "abc"
    assert cache.get_token() == "abc"
    assert exchange.calls == 2


def test_refresh_replaces_credential_wholesale():
    clock = Clock(500.0)
    cache = AccessTokenCache(Exchange({"access_token": "abc", "expires_in": 100}), clock=clock)
    before = cache.credential

    cache.get_token()
    after = cache.credential

    assert before is not after
    assert before.token is None
    assert after.token == "abc"
    assert after.expires_at == 600.0


def test_seed_token_used_until_invalidated():
    exchange = Exchange({"access_token": "fresh", "expires_in": 3600})
    cache = AccessTokenCache(exchange, clock=Clock(), seed_token=" seeded ")

    assert cache.credential.expires_at == math.inf
    assert cache.get_token() == "seeded"
    assert exchange.calls == 0

    cache.invalidate()
    assert cache.get_token() == "fresh"
    assert exchange.calls == 1


def test_refresh_persists_and_reloads(tmp_path):
    store = tmp_path / "state" / "token.json"
    clock = Clock(2_000.0)
    cache = AccessTokenCache(
        Exchange({"access_token": "stored", "expires_in": 100}),
        clock=clock,
        store_path=store,
    )
    cache.get_token()

    assert json.loads(store.read_text()) == {"access_token": "stored", "expires_at": 2_100.0}

    exchange = Exchange({"access_token": "other", "expires_in": 100})
    reloaded = AccessTokenCache(exchange, clock=clock, store_path=store, seed_token="seed")
    assert reloaded.get_token() == "stored"
    assert exchange.calls == 0

    clock.now = 2_100.0
    assert reloaded.get_token() == "other"


def test_corrupt_token_file_is_ignored(tmp_path):
    store = tmp_path / "token.json"
    store.write_text("{not json")
    exchange = Exchange({"access_token": "abc", "expires_in": 10})

    cache = AccessTokenCache(exchange, clock=Clock(), store_path=store)

    assert cache.credential.token is None
    assert cache.get_token() == "abc"
    assert json.loads(store.read_text())["access_token"] == "abc"


def test_expired_token_file_falls_back_to_seed(tmp_path):
    store = tmp_path / "token.json"
    store.write_text(json.dumps({"access_token": "old", "expires_at": 500.0}))
    exchange = Exchange({"access_token": "fresh", "expires_in": 3600})

    cache = AccessTokenCache(
        exchange, clock=Clock(1_000.0), store_path=store, seed_token="seeded"
    )

    assert cache.get_token() == "seeded"
    assert exchange.calls == 0


def test_expired_token_file_without_seed_triggers_exchange(tmp_path):
    store = tmp_path / "token.json"
    store.write_text(json.dumps({"access_token": "old", "expires_at": 500.0}))
    exchange = Exchange({"access_token": "fresh", "expires_in": 3600})

    cache = AccessTokenCache(exchange, clock=Clock(1_000.0), store_path=store)

    assert cache.get_token() == "fresh"
    assert exchange.calls == 1
