"""Resolution of filter configuration from presets, overrides, JSON files and environment."""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .exceptions import InvalidConfig
from .logging_config import get_logger
from .models import FilterConfig, ImageOptions

ENV_PREFIX = "FOODLESS_"

FILTER_PRESETS: Dict[str, FilterConfig] = {
    "default": FilterConfig(),
    # Softer fallback used by the web client when the remote config is unreachable.
    "mild": FilterConfig(
        edge_threshold=25,
        highlight_threshold=200,
        shadow_threshold=60,
        desaturation=0.7,
        contrast=1.2,
        brightness=0.8,
        edge_sharpness=1.1,
    ),
}

M = TypeVar("M", bound=BaseModel)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _canonical_key(key: str) -> str:
    if key.isupper():
        return key.lower()
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _describe_validation_error(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )


def _validate(model_cls: Type[M], values: Mapping[str, Any]) -> M:
    try:
        return model_cls.model_validate(dict(values))
    except ValidationError as exc:
        raise InvalidConfig(
            f"Invalid {model_cls.__name__}: {_describe_validation_error(exc)}"
        ) from exc


def _known_values(model_cls: Type[BaseModel], values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Keep recognised, non-None entries of ``values`` under their field names."""
    logger = get_logger("settings")
    known: Dict[str, Any] = {}
    for key, value in (values or {}).items():
        name = _canonical_key(str(key))
        if name not in model_cls.model_fields:
            logger.warning(f"Ignoring unknown {model_cls.__name__} key: {key}")
            continue
        if value is not None:
            known[name] = value
    return known


def _environment_values(
    model_cls: Type[BaseModel], environ: Optional[Mapping[str, str]]
) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for name in model_cls.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}", "").strip()
        if raw:
            values[name] = raw
    return values


def get_preset(name: str) -> FilterConfig:
    """Return a named filter preset."""
    try:
        return FILTER_PRESETS[name]
    except KeyError:
        available = ", ".join(sorted(FILTER_PRESETS))
        raise InvalidConfig(f"Unknown filter preset '{name}' (available: {available})") from None


def load_filter_config(
    overrides: Optional[Mapping[str, Any]] = None,
    preset: str = "default",
    environ: Optional[Mapping[str, str]] = None,
) -> FilterConfig:
    """
    Resolve a complete FilterConfig.

    Precedence, highest first: ``overrides``, ``FOODLESS_<FIELD>`` environment
    variables, then the preset. Fields missing or ``None`` at one level fall
    through to the next.

    Args:
        overrides: Field values keyed by snake_case, camelCase or UPPER_SNAKE name
        preset: Name of the base preset
        environ: Environment mapping (defaults to ``os.environ``)

    Raises:
        InvalidConfig: If the preset is unknown or any resolved value is out of range
    """
    values = get_preset(preset).model_dump()
    values.update(_environment_values(FilterConfig, environ))
    values.update(_known_values(FilterConfig, overrides))

    config = _validate(FilterConfig, values)
    get_logger("settings").debug(f"Resolved filter config: {config.model_dump()}")
    return config


def load_filter_config_file(
    path: Union[str, Path],
    preset: str = "default",
    environ: Optional[Mapping[str, str]] = None,
) -> FilterConfig:
    """
    Resolve a FilterConfig from a JSON file.

    The file holds either the filter object itself or an object with a
    ``filter`` key, as served by the remote configuration endpoint.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InvalidConfig(f"Cannot read filter config file {path}: {exc}") from exc

    if isinstance(data, dict) and isinstance(data.get("filter"), dict):
        data = data["filter"]
    if not isinstance(data, dict):
        raise InvalidConfig(f"Filter config file {path} must contain a JSON object")

    return load_filter_config(data, preset=preset, environ=environ)


def load_image_options(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ImageOptions:
    """Resolve ImageOptions from overrides, then ``FOODLESS_*`` variables, then defaults."""
    values = _environment_values(ImageOptions, environ)
    values.update(_known_values(ImageOptions, overrides))
    return _validate(ImageOptions, values)
