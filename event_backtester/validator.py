"""
Configuration Validator
-----------------------
Strict schema check of raw YAML dictionaries against the config dataclasses.

Unknown keys fail loudly at load time instead of being silently ignored, so a
typo such as `window_dayz` can never fall back to a default.
"""

from __future__ import annotations

import collections.abc
import typing
from dataclasses import fields, is_dataclass
from typing import Any, Dict, Set, Type


def list_item_type(tp: Any) -> Any:
    """Element type of list[X] / Sequence[X] annotations, else None."""
    if typing.get_origin(tp) in (list, tuple, collections.abc.Sequence):
        args = typing.get_args(tp)
        return args[0] if args else None
    return None


def validate_keys(
    raw_config: Dict[str, Any], data_class: Type[Any], path: str = ""
) -> None:
    """
    Recursively validates that every key in `raw_config` is a field of
    `data_class`, descending into nested dataclasses and lists of dataclasses.

    Args:
        raw_config: Raw mapping, usually straight from yaml.safe_load.
        data_class: Dataclass type to validate against.
        path: Dot/bracket path of the current section, used in error messages.

    Raises:
        ValueError: On the first section holding keys the schema does not know.
    """
    if not isinstance(raw_config, dict):
        raise ValueError(
            f"Config Error: expected a mapping at '{path or 'root'}', "
            f"got {type(raw_config).__name__}"
        )

    allowed_fields: Set[str] = {f.name for f in fields(data_class)}
    unknown_keys = set(raw_config.keys()) - allowed_fields
    if unknown_keys:
        error_path = path if path else "root"
        raise ValueError(
            f"Config Error: Unknown keys detected at '{error_path}': {sorted(unknown_keys)}. "
            f"Allowed keys: {sorted(allowed_fields)}"
        )

    hints = typing.get_type_hints(data_class)
    for f in fields(data_class):
        if f.name not in raw_config:
            continue
        value = raw_config[f.name]
        tp = hints.get(f.name)
        new_path = f"{path}.{f.name}" if path else f.name

        if is_dataclass(tp) and isinstance(value, dict):
            validate_keys(value, typing.cast(Type[Any], tp), path=new_path)
            continue

        item_tp = list_item_type(tp)
        if is_dataclass(item_tp) and isinstance(value, list):
            for i, item in enumerate(value):
                validate_keys(item, typing.cast(Type[Any], item_tp), path=f"{new_path}[{i}]")
