"""URL placeholder substitution and transport request construction."""

import re
from typing import Any, Mapping, Optional
from urllib.parse import quote

from .definitions import Definition, HttpStrategy
from .errors import ParamError
from .transport import QUERY_METHODS, TransportRequest


def _placeholder_patterns(name: str) -> tuple[re.Pattern, re.Pattern]:
    escaped = re.escape(name)
    return re.compile(rf":{escaped}\b"), re.compile(rf"\{{{escaped}\}}")


def substitute_url(template: str, params: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
    """Replace ``:name`` and ``{name}`` with values from ``params``.

    Returns the resolved URL and the params that were not consumed by a
    placeholder.
    """
    url = template
    residual: dict[str, Any] = {}
    for name, value in params.items():
        colon, braces = _placeholder_patterns(name)
        replacement = quote(str(value), safe="")
        url, colon_hits = colon.subn(lambda _m: replacement, url)
        url, brace_hits = braces.subn(lambda _m: replacement, url)
        if not (colon_hits or brace_hits):
            residual[name] = value
    return url, residual


def process_params(
    strategy: HttpStrategy, params: Mapping[str, Any]
) -> tuple[str, dict[str, Any]]:
    """Resolve URL and residual params via the processor or templating."""
    if strategy.params_processor is None:
        return substitute_url(strategy.url_template, params)

    try:
        result = strategy.params_processor(dict(params))
    except Exception as e:
        raise ParamError(f"params_processor failed: {e}") from e

    if not isinstance(result, Mapping):
        raise ParamError(
            f"params_processor must return a mapping with 'url' and 'params', got {type(result).__name__}"
        )
    url = result.get("url") or strategy.url_template
    processed = result.get("params")
    if processed is None:
        processed = dict(params)
    if not isinstance(processed, Mapping):
        raise ParamError("params_processor returned non-mapping 'params'")
    return url, dict(processed)


def build_request(
    definition: Definition,
    params: Optional[Mapping[str, Any]],
    timeout: int,
    headers: Optional[Mapping[str, str]] = None,
) -> TransportRequest:
    strategy = definition.strategy
    if not isinstance(strategy, HttpStrategy):
        raise TypeError(f"Definition '{definition.key}' uses a custom handler")

    url, residual = process_params(strategy, params or {})
    method = definition.method.value
    request = TransportRequest(
        url=url,
        method=method,
        headers={**definition.headers, **(headers or {})},
        timeout=timeout,
    )
    if method in QUERY_METHODS:
        request.params = residual
    else:
        request.body = residual
    return request
