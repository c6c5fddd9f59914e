"""Config Loader - Loads RequestOptions from YAML files.

String values may reference environment variables as ``${NAME}``, which keeps
credentials (basic_auth passwords, proxy passwords, PEM text) out of the file.
Callables cannot be expressed in YAML: ``parser`` and ``debug_output`` must be
set in code, and ``query_string_normalizer`` accepts the names ``rails`` or
``flat``.

Loading is explicit; nothing in the request pipeline reads configuration on
its own.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from api_courier.errors import ApiCourierError
from api_courier.models import RequestOptions

_ENV_REFERENCE = re.compile(r"\$\{([^}]+)\}")


class ConfigError(ApiCourierError):
    """Raised when configuration loading fails."""


def load_request_options(config_path: Path) -> RequestOptions:
    """Read *config_path* as YAML and validate it into RequestOptions.

    An empty file yields default options.

    Raises:
        ConfigError: Missing file, invalid YAML, a non-mapping document, an
            unset environment variable or options that fail validation.
    """
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        document = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e

    if document is None:
        document = {}
    elif not isinstance(document, dict):
        raise ConfigError("Config file must be a YAML mapping")

    return options_from_mapping(expand_env_references(document))


def options_from_mapping(raw_options: dict[str, Any]) -> RequestOptions:
    """Validate an already-loaded mapping into RequestOptions."""
    try:
        return RequestOptions.model_validate(raw_options)
    except ValidationError as e:
        raise ConfigError(f"Invalid request options: {e}") from e


def expand_env_references(value: Any) -> Any:
    """Replace ``${NAME}`` in every string nested inside *value*.

    Mappings and lists are rebuilt; other scalars come back as they are.
    """
    if isinstance(value, dict):
        return {key: expand_env_references(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_references(item) for item in value]
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(_env_value, value)
    return value


def _env_value(match: re.Match) -> str:
    name = match.group(1)
    try:
        return os.environ[name]
    except KeyError:
        raise ConfigError(f"Environment variable '{name}' is not set") from None
