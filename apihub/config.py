"""Environment-driven settings."""

import os
from dataclasses import dataclass, field

VARIABLE_PREFIX = "APIHUB_VAR_"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    db_path: str = "/tmp/apihub/definitions.db"
    base_url: str = ""
    ready_timeout_ms: int = 10000
    retry_delay_ms: int = 0
    use_mocks: bool = False
    seed_defaults: bool = True
    log_level: str = "INFO"
    # read-only env-scope values for ${name} substitution
    variables: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=os.getenv("APIHUB_DB_PATH", cls.db_path),
            base_url=os.getenv("APIHUB_BASE_URL", cls.base_url),
            ready_timeout_ms=int(os.getenv("APIHUB_READY_TIMEOUT_MS", cls.ready_timeout_ms)),
            retry_delay_ms=int(os.getenv("APIHUB_RETRY_DELAY_MS", cls.retry_delay_ms)),
            use_mocks=_env_bool("APIHUB_USE_MOCKS", cls.use_mocks),
            seed_defaults=_env_bool("APIHUB_SEED_DEFAULTS", cls.seed_defaults),
            log_level=os.getenv("APIHUB_LOG_LEVEL", cls.log_level).upper(),
            variables={
                name[len(VARIABLE_PREFIX):]: value
                for name, value in os.environ.items()
                if name.startswith(VARIABLE_PREFIX)
            },
        )
