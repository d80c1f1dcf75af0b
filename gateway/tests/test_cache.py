"""Tests for the response cache."""

from apihub.cache import ResponseCache, canonical_params


def test_canonical_params_ignores_key_order():
    assert canonical_params({"b": 1, "a": 2}) == canonical_params({"a": 2, "b": 1})
    assert canonical_params(None) == canonical_params({}) == "{}"


def test_entry_expires_lazily(clock):
    cache = ResponseCache(clock)
    key = cache.make_key("ping", {"q": 1})
    cache.set(key, {"success": True}, 1000)

    clock.advance(999)
    assert cache.get(key).data == {"success": True}

    clock.advance(1)
    assert cache.get(key) is None
    assert len(cache) == 0


def test_zero_ttl_is_not_stored(clock):
    cache = ResponseCache(clock)
    cache.set("ping:{}", {"x": 1}, 0)

    assert len(cache) == 0


def test_purge_by_definition_key(clock):
    cache = ResponseCache(clock)
    cache.set(cache.make_key("ping", {"a": 1}), 1, 1000)
    cache.set(cache.make_key("ping", {"a": 2}), 2, 1000)
    cache.set(cache.make_key("pingpong", {}), 3, 1000)

    assert cache.purge("ping") == 2
    assert list(cache.keys()) == [cache.make_key("pingpong", {})]
    assert cache.purge() == 1


def test_sweep_removes_expired(clock):
    cache = ResponseCache(clock)
    cache.set("a:{}", 1, 100)
    cache.set("b:{}", 2, 1000)

    clock.advance(500)

    assert cache.sweep() == 1
    assert list(cache.keys()) == ["b:{}"]
