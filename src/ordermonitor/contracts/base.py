"""Base classes for wire schemas.

Every topic has two explicit payload shapes:

- a *structured* shape (``WireModel``), validated strictly from JSON, and
- a *legacy* generic key/value shape (``LenientWireModel``), where every field
  is coerced leniently: missing or mistyped numbers become 0, missing strings
  become empty, non-list collections become empty lists.

These are external contracts (anti-corruption layer); the rest of the code
only sees the domain types they convert into.
"""

import types
from inspect import isclass
from typing import Any, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from ordermonitor.model.coercion import to_bool, to_float, to_int, to_str


class WireModel(BaseModel):
    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore", frozen=True)


def coerce_to(annotation: Any, value: Any) -> Any:
    """Coerce ``value`` towards ``annotation`` without ever raising."""
    origin = get_origin(annotation)

    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if value is None:
            return None
        return coerce_to(args[0], value) if args else value

    if origin in (list, tuple):
        if not isinstance(value, list | tuple):
            return []
        return [item for item in value if isinstance(item, dict)]

    if annotation is bool:
        return to_bool(value)
    if annotation is int:
        return to_int(value)
    if annotation is float:
        return to_float(value)
    if annotation is str:
        return to_str(value)
    if isclass(annotation) and issubclass(annotation, BaseModel):
        return value if isinstance(value, dict) else None
    return value


class LenientWireModel(WireModel):
    model_config = ConfigDict(strict=False)

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_leniently(cls, value: Any, info: ValidationInfo) -> Any:
        field = cls.model_fields[info.field_name]
        return coerce_to(field.annotation, value)

    def has_known_fields(self) -> bool:
        """Whether the raw mapping contained at least one recognised key."""
        return bool(self.model_fields_set)
