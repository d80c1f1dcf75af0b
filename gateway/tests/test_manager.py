"""Tests for the manager facade and its readiness state machine."""

import asyncio

import pytest

from apihub import ApiManager, ManagerState, MemoryPersistence, NotReadyError, Settings
from apihub.defaults import DEFAULT_DEFINITIONS


@pytest.mark.asyncio
async def test_init_transitions_to_ready(manager):
    assert manager.state == ManagerState.UNINITIALIZED

    assert await manager.init() is True
    assert manager.state == ManagerState.READY
    assert await manager.init() is True


@pytest.mark.asyncio
async def test_concurrent_init_shares_one_attempt(transport, settings):
    class CountingPersistence(MemoryPersistence):
        loads = 0

        async def load(self):
            CountingPersistence.loads += 1
            await asyncio.sleep(0.01)
            return await super().load()

    manager = ApiManager(transport=transport, persistence=CountingPersistence(), settings=settings)

    results = await asyncio.gather(manager.init(), manager.init(), manager.init())

    assert results == [True, True, True]
    assert CountingPersistence.loads == 1


@pytest.mark.asyncio
async def test_seeds_defaults_into_empty_store(transport):
    persistence = MemoryPersistence()
    manager = ApiManager(transport=transport, persistence=persistence, settings=Settings())

    await manager.init()

    assert set(manager.get_all()) == set(DEFAULT_DEFINITIONS)
    assert set(persistence.records) == set(DEFAULT_DEFINITIONS)
    assert manager.get("getReport").url == "/api/reports/:reportId"


@pytest.mark.asyncio
async def test_does_not_seed_when_persisted_definitions_exist(transport):
    persistence = MemoryPersistence({"mine": {"url": "/mine"}})
    manager = ApiManager(transport=transport, persistence=persistence, settings=Settings())

    await manager.init()

    assert list(manager.get_all()) == ["mine"]
    assert persistence.save_count == 0


@pytest.mark.asyncio
async def test_injected_seed(transport, settings):
    manager = ApiManager(
        transport=transport, settings=settings, seed={"ping": {"url": "/ping"}}
    )

    await manager.init()

    assert list(manager.get_all()) == ["ping"]


@pytest.mark.asyncio
async def test_init_failure_resets_and_retries(transport, settings):
    class FlakyPersistence(MemoryPersistence):
        calls = 0

        async def load(self):
            FlakyPersistence.calls += 1
            if FlakyPersistence.calls == 1:
                raise RuntimeError("disk unavailable")
            return {"a": {"url": "/a"}}

    manager = ApiManager(transport=transport, persistence=FlakyPersistence(), settings=settings)

    assert await manager.init() is False
    assert manager.state == ManagerState.UNINITIALIZED

    assert await manager.init() is True
    assert manager.state == ManagerState.READY
    assert "a" in manager.get_all()


@pytest.mark.asyncio
async def test_call_initializes_lazily(manager, transport):
    manager.register("ping", {"url": "/ping"})

    result = await manager.call("ping")

    assert result == {"success": True, "data": {"ok": True}}
    assert manager.ready


@pytest.mark.asyncio
async def test_call_raises_not_ready_on_timeout(transport):
    class StuckPersistence(MemoryPersistence):
        async def load(self):
            await asyncio.sleep(10)
            return {}

    manager = ApiManager(
        transport=transport,
        persistence=StuckPersistence(),
        settings=Settings(ready_timeout_ms=20, seed_defaults=False),
    )

    with pytest.raises(NotReadyError):
        await manager.call("ping")

    result = await manager.test("ping")
    assert result["success"] is False
    assert result["error_type"] == "NotReadyError"

    manager.store._load_task.cancel()


@pytest.mark.asyncio
async def test_events_wired_once(manager):
    await manager.init()
    count = manager.store.events.listener_count()

    manager._wire_events()

    assert manager.store.events.listener_count() == count
    manager.detach()
    assert manager.store.events.listener_count() == 0


@pytest.mark.asyncio
async def test_remove_cascades_to_cache_and_metadata(manager):
    from apihub import FieldDescriptor, VariableDescriptor

    await manager.init()
    manager.register("ping", {"url": "/ping", "cache_time": 60000})
    manager.fields.set_fields("ping", [FieldDescriptor(name="pong")])
    manager.variables.set_variables("ping", [VariableDescriptor(name="q")])
    await manager.call("ping", {})

    assert manager.remove("ping") is True

    assert "ping" not in manager.get_all()
    assert list(manager.proxy.cache.keys("ping")) == []
    assert manager.fields.get_fields("ping") == []
    assert manager.variables.get_variables("ping") == []


@pytest.mark.asyncio
async def test_batch_call_through_manager(manager):
    manager.register("a", {"url": "/a"})

    results = await manager.batch_call([{"key": "a"}, {"key": "b"}])

    assert [r.success for r in results] == [True, False]


@pytest.mark.asyncio
async def test_export_import_and_save(manager):
    persistence = MemoryPersistence()
    other = ApiManager(persistence=persistence, settings=Settings(seed_defaults=False))
    manager.register("a", {"url": "/a", "retries": 1})

    assert other.import_apis(manager.export_apis()) == 1
    assert await other.save() is True
    assert persistence.records["a"]["retries"] == 1


@pytest.mark.asyncio
async def test_generate_docs(manager):
    await manager.init()
    manager.register("ping", {"url": "/ping", "category": "system", "description": "Liveness"})

    docs = manager.generate_docs()

    assert "### ping (`ping`)" in docs
    assert "Liveness" in docs


def test_from_settings_uses_sqlite(tmp_path):
    from apihub import HttpxTransport, SqlitePersistence

    settings = Settings(db_path=str(tmp_path / "defs.db"), base_url="http://upstream")
    manager = ApiManager.from_settings(settings)

    assert isinstance(manager.store.persistence, SqlitePersistence)
    assert manager.store.persistence.db_path == tmp_path / "defs.db"
    assert isinstance(manager.proxy.transport, HttpxTransport)
    assert manager.proxy.transport.base_url == "http://upstream"


@pytest.mark.asyncio
async def test_wait_for_ready_zero_timeout_is_not_the_default(transport):
    class StuckPersistence(MemoryPersistence):
        async def load(self):
            await asyncio.sleep(10)
            return {}

    manager = ApiManager(
        transport=transport,
        persistence=StuckPersistence(),
        settings=Settings(ready_timeout_ms=5000, seed_defaults=False),
    )
    loop = asyncio.get_running_loop()
    started = loop.time()

    assert await manager.wait_for_ready(0) is False
    assert loop.time() - started < 1

    if manager.store._load_task is not None:
        manager.store._load_task.cancel()
    if manager._init_task is not None:
        manager._init_task.cancel()


@pytest.mark.asyncio
async def test_call_substitutes_scoped_variables(manager, transport):
    manager.register("site", {"url": "/sites/{id}"})
    manager.variables.set_value("siteId", 7, "global")
    manager.variables.set_value("lang", "de", "session")

    await manager.call("site", {"id": "${siteId}", "q": "lang=${lang}", "raw": "${unknown}"})

    request = transport.requests[0]
    assert request.url == "/sites/7"
    assert request.params == {"q": "lang=de", "raw": "${unknown}"}


@pytest.mark.asyncio
async def test_batch_and_test_substitute_scoped_variables(manager, transport):
    manager.register("site", {"url": "/sites/{id}"})
    manager.variables.set_value("siteId", 3)

    results = await manager.batch_call([{"key": "site", "params": {"id": "${siteId}"}}])
    diagnostic = await manager.test("site", {"id": "${siteId}"})

    assert results[0].success is True
    assert diagnostic["request"]["url"] == "/sites/3"
    assert [r.url for r in transport.requests] == ["/sites/3", "/sites/3"]


def test_env_scope_comes_from_settings(transport):
    settings = Settings(base_url="http://upstream", variables={"TENANT": "acme"}, seed_defaults=False)
    manager = ApiManager(transport=transport, settings=settings)

    assert manager.variables.get_value("TENANT", "env") == "acme"
    assert manager.variables.get_value("API_BASE_URL") == "http://upstream"
