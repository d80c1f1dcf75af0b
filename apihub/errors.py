"""Error taxonomy for definition lookup and invocation."""

from typing import Any, Optional


class ApiError(Exception):
    """Base class for every error raised by the registry and proxy."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.key = key


class NotFoundError(ApiError):
    """No definition is registered under the requested key."""


class DisabledError(ApiError):
    """The definition exists but its status is ``disabled``."""


class ValidationError(ApiError):
    """A definition's ``validate`` hook rejected the response."""


class ParamError(ApiError):
    """A ``params_processor`` failed or returned an unusable shape."""


class NotReadyError(ApiError):
    """The manager did not become ready within the allotted time."""


class TransportError(ApiError):
    """Network failure, timeout or non-success upstream status.

    This is the only error kind the retry loop consumes (together with
    failures raised by custom handlers).
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        status: Optional[int] = None,
        body: Any = None,
        timeout: bool = False,
    ):
        super().__init__(message, key)
        self.status = status
        self.body = body
        self.timeout = timeout
