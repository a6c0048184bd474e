import os
from typing import Annotated

from pydantic import Field, ValidationError
from pydantic.dataclasses import dataclass as pydantic_dataclass

from histnav.exceptions import ConfigurationError
from histnav.models import ViewMode

DEFAULT_SERVER_URL = "http://localhost:3000/api"
DEFAULT_TIMEOUT = 10.0
DEFAULT_LOG_LEVEL = "WARNING"

SHORT_SHA_LENGTH = 7

_ENV_FIELDS = {
    "HISTNAV_SERVER_URL": "server_url",
    "HISTNAV_PROJECT_ID": "project_id",
    "HISTNAV_TIMEOUT": "timeout",
    "HISTNAV_VIEW_MODE": "view_mode",
    "HISTNAV_LOG_LEVEL": "log_level",
}


@pydantic_dataclass(slots=True, frozen=True)
class Settings:
    server_url: str = DEFAULT_SERVER_URL
    project_id: str | None = None
    timeout: Annotated[float, Field(gt=0)] = DEFAULT_TIMEOUT
    view_mode: ViewMode = ViewMode.CHANGES
    log_level: Annotated[str, Field(pattern=r"^(TRACE|DEBUG|INFO|SUCCESS|WARNING|ERROR|CRITICAL)$")] = (
        DEFAULT_LOG_LEVEL
    )


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """
    Builds Settings from HISTNAV_* environment variables.
    Unset or empty variables fall back to the defaults.
    """
    env = os.environ if environ is None else environ
    values: dict[str, str] = {}
    for var_name, field_name in _ENV_FIELDS.items():
        if raw := env.get(var_name, "").strip():
            values[field_name] = raw.upper() if field_name == "log_level" else raw

    try:
        return Settings(**values)  # pyright: ignore[reportArgumentType]
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors(include_url=False)
        )
        raise ConfigurationError(f"Invalid histnav configuration: {problems}") from e
