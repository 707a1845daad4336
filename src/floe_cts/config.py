"""Configuration for floe-cts.

Settings are read from FLOE_CTS_* environment variables (and a local .env
file). The function universe can be kept in a YAML file:

    # cts-universe.yaml
    functions:
      - id: MATH_ADD
        version: v1.0
      - id: NETWORK_ADVANCED
        version: v2.1

Example:
    >>> settings = get_settings()
    >>> universe = load_universe(settings.universe_file)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from floe_cts.errors import UniverseLoadError
from floe_cts.models import FunctionIdentity

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

# Coverage at or above this is reported as good
DEFAULT_COVERAGE_THRESHOLD: float = 80.0


class CTSSettings(BaseSettings):
    """Runtime settings.

    Environment Variables:
        FLOE_CTS_UNIVERSE_FILE: YAML file with the function universe
        FLOE_CTS_COVERAGE_THRESHOLD: Informational coverage threshold (percent)
        FLOE_CTS_LOG_LEVEL: structlog filtering level
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOE_CTS_",
        env_file=".env",
        extra="ignore",
    )

    universe_file: Path | None = Field(
        default=None,
        description="YAML file listing the function universe",
    )
    coverage_threshold: float = Field(
        default=DEFAULT_COVERAGE_THRESHOLD,
        ge=0.0,
        le=100.0,
        description="Coverage percentage considered good (informational only)",
    )
    log_level: LogLevel = Field(
        default="WARNING",
        description="Minimum level of floe-cts log events",
    )


def get_settings(**overrides: Any) -> CTSSettings:
    """Load settings from the environment, with explicit overrides on top."""
    return CTSSettings(**overrides)


class _UniverseEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)


class _UniverseFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    functions: list[_UniverseEntry] = Field(default_factory=list)


def load_universe(path: Path) -> set[FunctionIdentity]:
    """Load the function universe from a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Set of function identities. Repeated entries collapse.

    Raises:
        UniverseLoadError: If the file is missing, not YAML, or malformed.
    """
    import yaml

    if not path.exists():
        raise UniverseLoadError("Universe file not found", path=str(path))

    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise UniverseLoadError(f"Invalid YAML: {e}", path=str(path)) from e

    try:
        parsed = _UniverseFile.model_validate(data or {})
    except ValidationError as e:
        raise UniverseLoadError(
            f"Invalid universe file: {e.error_count()} error(s)",
            path=str(path),
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e

    return {FunctionIdentity(function_id=entry.id, version=entry.version) for entry in parsed.functions}


def configure_logging(level: LogLevel | str = "WARNING") -> None:
    """Configure structlog to drop events below level."""
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
    )


__all__ = [
    "DEFAULT_COVERAGE_THRESHOLD",
    "CTSSettings",
    "configure_logging",
    "get_settings",
    "load_universe",
]
