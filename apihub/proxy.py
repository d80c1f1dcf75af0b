"""Invocation Proxy: executes calls against resolved definitions.

A call resolves its definition, consults the response cache, then either
hands control to a custom handler or builds a transport request from the
URL template. Transport and handler failures are retried against a
per-call budget; the successful response is transformed, validated,
normalized into ``{success, data}`` and cached. Each call publishes
CALLED, then RESPONSE or ERROR, on the store's event bus.
"""

import asyncio
import copy
import inspect
import logging
from dataclasses import dataclass, field, fields as dataclass_fields
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from .cache import Clock, ResponseCache, monotonic_ms
from .definitions import CustomStrategy, Definition
from .errors import ApiError, DisabledError, NotFoundError, TransportError, ValidationError
from .events import CallEventType, ChangeEvent, ChangeType, EventBus
from .normalize import normalize_response
from .notify import LogNotifier, Notifier
from .store import DefinitionStore
from .templating import build_request
from .transport import Transport, TransportRequest

logger = logging.getLogger(__name__)

_ALIASES = {"cacheTime": "cache_time", "showError": "show_error", "useMock": "use_mock"}
_REDACTED_PARAMS = ("password", "token", "secret")
_PREVIEW_CHARS = 500


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _redact(params: Mapping[str, Any]) -> dict[str, Any]:
    return {
        k: "******" if any(word in k.lower() for word in _REDACTED_PARAMS) else v
        for k, v in params.items()
    }


def _preview(value: Any) -> str:
    text = repr(value)
    if len(text) > _PREVIEW_CHARS:
        return text[:_PREVIEW_CHARS] + "...(truncated)"
    return text


@dataclass
class CallOptions:
    """Effective per-call settings: definition defaults plus overrides."""

    timeout: int
    retries: int
    cache_time: int
    headers: dict[str, str] = field(default_factory=dict)
    show_error: bool = True
    use_mock: bool = False

    @classmethod
    def resolve(
        cls, definition: Definition, overrides: Optional[Mapping[str, Any]] = None
    ) -> "CallOptions":
        values = {_ALIASES.get(k, k): v for k, v in (overrides or {}).items()}
        known = {f.name for f in dataclass_fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown call options: {', '.join(sorted(unknown))}")

        def pick(name: str) -> Any:
            value = values.get(name)
            return getattr(definition, name) if value is None else value

        options = cls(
            timeout=int(pick("timeout")),
            retries=int(pick("retries")),
            cache_time=int(pick("cache_time")),
            headers={**definition.headers, **(values.get("headers") or {})},
            show_error=values.get("show_error", True) is not False,
            use_mock=bool(values.get("use_mock", False)),
        )
        for name in ("timeout", "retries", "cache_time"):
            if getattr(options, name) < 0:
                raise ValueError(f"Call option '{name}' must be >= 0")
        return options


@dataclass
class Exchange:
    """One successful fetch: the request sent (if any) and what came back."""

    raw: Any
    request: Optional[TransportRequest] = None
    status: Optional[int] = None


@dataclass
class BatchResult:
    key: Optional[str]
    success: bool
    response: Any = None
    error: Optional[BaseException] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "success": self.success,
            "response": self.response,
            "error": str(self.error) if self.error is not None else None,
            "error_type": type(self.error).__name__ if self.error is not None else None,
        }


class DiagnosticTrace:
    def __init__(self, clock: Clock):
        self.clock = clock
        self.started = clock()
        self.entries: list[dict[str, Any]] = []
        self.request: Optional[TransportRequest] = None

    def add(self, message: str) -> None:
        self.entries.append({"at": round(self.clock() - self.started, 3), "message": message})

    @property
    def elapsed(self) -> float:
        return round(self.clock() - self.started, 3)


class ApiProxy:
    def __init__(
        self,
        store: DefinitionStore,
        transport: Transport,
        notifier: Optional[Notifier] = None,
        cache: Optional[ResponseCache] = None,
        clock: Clock = monotonic_ms,
        variables=None,
        use_mocks: bool = False,
        retry_delay_ms: int = 0,
    ):
        self.store = store
        self.transport = transport
        self.notifier = notifier or LogNotifier()
        self.clock = clock
        self.cache = cache or ResponseCache(clock)
        self.variables = variables
        self.use_mocks = use_mocks
        self.retry_delay_ms = retry_delay_ms

    # -- cache wiring ----------------------------------------------------

    def attach(self, events: EventBus) -> list[Callable[[], None]]:
        """Purge cached responses whenever a definition changes or goes away.

        REGISTERED counts as a change: registering over an existing key (or
        importing with overwrite) replaces the definition.
        """
        return [
            events.subscribe(ChangeType.REGISTERED, self._on_definition_changed),
            events.subscribe(ChangeType.UPDATED, self._on_definition_changed),
            events.subscribe(ChangeType.REMOVED, self._on_definition_changed),
        ]

    def _on_definition_changed(self, event: ChangeEvent) -> None:
        purged = self.clear_cache(event.key)
        if purged:
            logger.debug(f"Purged {purged} cached responses for '{event.key}'")

    def clear_cache(self, key: Optional[str] = None) -> int:
        return self.cache.purge(key)

    # -- public surface --------------------------------------------------

    async def call(
        self,
        key: str,
        params: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        definition = self._resolve(key)
        params = dict(params or {})
        opts = CallOptions.resolve(definition, options)
        redacted = _redact(params)
        logger.debug(f"Calling API '{key}' with {redacted}")
        started = self.clock()
        self._emit(CallEventType.CALLED, key, params=redacted)

        cache_key = None
        if opts.cache_time > 0:
            cache_key = self.cache.make_key(key, params)
            hit = self.cache.get(cache_key)
            if hit is not None:
                logger.debug(f"Cache hit for '{key}'")
                result = copy.deepcopy(hit.data)
                self._emit(
                    CallEventType.RESPONSE, key, params=redacted, data=result, cached=True,
                    elapsed_ms=self.clock() - started,
                )
                return result

        try:
            exchange = await self._fetch_with_retry(definition, params, opts)
            result = self._finish(definition, params, exchange.raw)
        except Exception as e:
            self._emit(
                CallEventType.ERROR, key, params=redacted, error=e,
                error_type=type(e).__name__, elapsed_ms=self.clock() - started,
            )
            self._surface(definition, e, opts)
            raise

        if cache_key is not None:
            self.cache.set(cache_key, copy.deepcopy(result), opts.cache_time)
        self._emit(
            CallEventType.RESPONSE, key, params=redacted, data=result, cached=False,
            status=exchange.status, elapsed_ms=self.clock() - started,
        )
        return result

    async def batch_call(
        self, calls: Sequence[Mapping[str, Any]], parallel: bool = True
    ) -> list[BatchResult]:
        """Run many calls; one failure never aborts the others."""
        if parallel:
            return list(await asyncio.gather(*(self._batch_item(c) for c in calls)))

        results = []
        for item in calls:
            results.append(await self._batch_item(item))
        return results

    async def test(
        self, key: str, params: Optional[Mapping[str, Any]] = None
    ) -> dict[str, Any]:
        """Single uncached attempt that captures every outcome into a result."""
        params = dict(params or {})
        trace = DiagnosticTrace(self.clock)
        result: dict[str, Any] = {
            "key": key,
            "success": False,
            "data": None,
            "raw": None,
            "error": None,
            "error_type": None,
            "status": None,
            "request": None,
            "is_custom_handler": False,
            "missing_params": [],
            "started_at": datetime.now(timezone.utc).isoformat(),
        }
        trace.add(f"Testing API '{key}' with {_redact(params)}")

        try:
            definition = self._resolve(key)
            result["is_custom_handler"] = isinstance(definition.strategy, CustomStrategy)
            if self.variables is not None:
                result["missing_params"] = self.variables.missing(key, params)
                if result["missing_params"]:
                    trace.add(f"Missing required params: {', '.join(result['missing_params'])}")

            opts = CallOptions.resolve(
                definition, {"retries": 0, "cache_time": 0, "show_error": False}
            )
            exchange = await self._fetch(definition, params, opts, trace)
            result["raw"] = exchange.raw
            result["status"] = exchange.status
            result["data"] = self._finish(definition, params, exchange.raw, trace)
            result["success"] = True
            trace.add(f"Completed in {trace.elapsed}ms")
        except Exception as e:
            result["error"] = str(e)
            result["error_type"] = type(e).__name__
            if isinstance(e, TransportError):
                result["status"] = e.status
                result["raw"] = e.body
            trace.add(f"Failed: {type(e).__name__}: {e}")
            logger.info(f"Test of API '{key}' failed: {e}")

        if trace.request is not None:
            result["request"] = trace.request.describe()
        result["response_time_ms"] = trace.elapsed
        result["finished_at"] = datetime.now(timezone.utc).isoformat()
        result["trace"] = trace.entries
        return result

    # -- internals -------------------------------------------------------

    def _resolve(self, key: str) -> Definition:
        definition = self.store.get(key)
        if definition is None:
            raise NotFoundError(f"API definition not found: {key}", key=key)
        if definition.disabled:
            raise DisabledError(f"API is disabled: {key}", key=key)
        return definition

    async def _batch_item(self, item: Mapping[str, Any]) -> BatchResult:
        key = item.get("key")
        try:
            response = await self.call(key, item.get("params"), item.get("options"))
        except Exception as e:
            return BatchResult(key=key, success=False, error=e)
        return BatchResult(key=key, success=True, response=response)

    async def _fetch_with_retry(
        self, definition: Definition, params: dict[str, Any], opts: CallOptions
    ) -> Exchange:
        remaining = opts.retries
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._fetch(definition, params, opts)
            except Exception as e:
                if remaining <= 0 or not self._retryable(definition, e):
                    raise
                remaining -= 1
                logger.warning(
                    f"API '{definition.key}' failed (attempt {attempt}): {e}. "
                    f"Retrying, {remaining} retries left"
                )
                if self.retry_delay_ms > 0:
                    await asyncio.sleep(self.retry_delay_ms * (2 ** (attempt - 1)) / 1000)

    @staticmethod
    def _retryable(definition: Definition, error: Exception) -> bool:
        if isinstance(error, TransportError):
            return True
        if isinstance(error, ApiError):
            return False
        return isinstance(definition.strategy, CustomStrategy)

    async def _fetch(
        self,
        definition: Definition,
        params: dict[str, Any],
        opts: CallOptions,
        trace: Optional[DiagnosticTrace] = None,
    ) -> Exchange:
        if definition.mock is not None and (opts.use_mock or self.use_mocks):
            if trace:
                trace.add("Using mock fixture")
            mock = definition.mock
            raw = mock(params) if callable(mock) else copy.deepcopy(mock)
            return Exchange(raw=await _maybe_await(raw))

        strategy = definition.strategy
        if isinstance(strategy, CustomStrategy):
            if trace:
                trace.add("Invoking custom handler")
            raw = await self._bounded(
                _maybe_await(strategy.handler(params, opts)), opts.timeout, definition.key
            )
            return Exchange(raw=raw)

        request = build_request(definition, params, opts.timeout, opts.headers)
        if trace:
            trace.request = request
            trace.add(f"{request.method} {request.url} (timeout {request.timeout}ms)")
        response = await self._bounded(
            self.transport.request(request), opts.timeout, definition.key
        )
        if trace:
            trace.add(f"Response {response.status}: {_preview(response.data)}")
        return Exchange(raw=response.data, request=request, status=response.status)

    async def _bounded(self, awaitable: Awaitable[Any], timeout_ms: int, key: str) -> Any:
        if not timeout_ms:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"API '{key}' timed out after {timeout_ms}ms", key=key, timeout=True
            ) from e

    def _finish(
        self,
        definition: Definition,
        params: dict[str, Any],
        raw: Any,
        trace: Optional[DiagnosticTrace] = None,
    ) -> dict[str, Any]:
        result = raw
        if definition.transform is not None:
            result = definition.transform(result, params)
            if trace:
                trace.add(f"Transformed: {_preview(result)}")
        if definition.validate is not None:
            verdict = definition.validate(result)
            if verdict is not True:
                message = verdict if isinstance(verdict, str) and verdict else "Response validation failed"
                raise ValidationError(message, key=definition.key)
        return normalize_response(result)

    def _emit(self, event_type: CallEventType, key: str, **payload: Any) -> None:
        self.store.events.publish(ChangeEvent(event_type, key, payload))

    def _surface(self, definition: Definition, error: Exception, opts: CallOptions) -> None:
        logger.error(f"API '{definition.key}' failed: {error}")
        if not opts.show_error:
            return
        message = str(error) or "Request failed"
        if isinstance(error, TransportError) and isinstance(error.body, Mapping):
            message = error.body.get("message") or message
        self.notifier.display(message, "error")
