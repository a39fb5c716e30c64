"""
Runtime settings for cfnscript.

Settings come from environment variables, the same way the rest of the
toolchain reads its runtime configuration:

    CFNSCRIPT_LOG_LEVEL  - Logging level for the CLI (default: WARNING)
    CFNSCRIPT_MAX_DEPTH  - Maximum nesting depth for parse/decompile, 1 to 100 (default: 100)
    CFNSCRIPT_FORMAT     - Default compile output format, yaml or json (default: yaml)
    CFNSCRIPT_INDENT     - Pretty-printer indent width (default: 2)

Usage:
    from cfnscript.core.settings import load_settings

    settings = load_settings()
    compile_source(text, settings=settings)
"""

from __future__ import annotations

import logging
import os
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

LOG_LEVEL_VAR = "CFNSCRIPT_LOG_LEVEL"
MAX_DEPTH_VAR = "CFNSCRIPT_MAX_DEPTH"
FORMAT_VAR = "CFNSCRIPT_FORMAT"
INDENT_VAR = "CFNSCRIPT_INDENT"

# Each nesting level costs the parser about eight Python frames
MAX_DEPTH_LIMIT = 100

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class OutputFormat(StrEnum):
    """Template text formats."""

    YAML = "yaml"
    JSON = "json"


class Settings(BaseModel):
    """Resolved runtime settings."""

    log_level: str = Field(default="WARNING", description="Logging level name")
    max_depth: int = Field(
        default=100, ge=1, le=MAX_DEPTH_LIMIT, description="Maximum nesting depth"
    )
    default_format: OutputFormat = Field(default=OutputFormat.YAML)
    indent: int = Field(default=2, ge=1, le=8, description="Pretty-printer indent width")

    model_config = ConfigDict(frozen=True)


DEFAULT_SETTINGS = Settings()


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer. Using %d.", name, raw, default)
        return default


def load_settings() -> Settings:
    """Build Settings from the environment, ignoring invalid values with a warning."""
    level = os.environ.get(LOG_LEVEL_VAR, "").upper().strip()
    if level and level not in _LOG_LEVELS:
        logger.warning(
            "Unknown %s value '%s'. Valid values: %s. Using WARNING.",
            LOG_LEVEL_VAR,
            level,
            ", ".join(_LOG_LEVELS),
        )
        level = ""

    fmt = os.environ.get(FORMAT_VAR, "").lower().strip()
    if fmt and fmt not in (OutputFormat.YAML, OutputFormat.JSON):
        logger.warning("Unknown %s value '%s'. Using yaml.", FORMAT_VAR, fmt)
        fmt = ""

    max_depth = _int_from_env(MAX_DEPTH_VAR, DEFAULT_SETTINGS.max_depth)
    if not 1 <= max_depth <= MAX_DEPTH_LIMIT:
        logger.warning(
            "Ignoring %s=%d: must be between 1 and %d.", MAX_DEPTH_VAR, max_depth, MAX_DEPTH_LIMIT
        )
        max_depth = DEFAULT_SETTINGS.max_depth

    indent = _int_from_env(INDENT_VAR, DEFAULT_SETTINGS.indent)
    if not 1 <= indent <= 8:
        logger.warning("Ignoring %s=%d: must be between 1 and 8.", INDENT_VAR, indent)
        indent = DEFAULT_SETTINGS.indent

    return Settings(
        log_level=level or DEFAULT_SETTINGS.log_level,
        max_depth=max_depth,
        default_format=OutputFormat(fmt) if fmt else DEFAULT_SETTINGS.default_format,
        indent=indent,
    )
