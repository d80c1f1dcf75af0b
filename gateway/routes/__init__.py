"""Gateway routers."""

from . import calls
from . import definitions

__all__ = ["calls", "definitions"]
