"""Base class for typed API objects.

Typed objects are frozen dataclasses. Decoding walks the dataclass fields
and their resolved type hints, so a new type only has to declare its fields.
Recursive fields (a message replying to another message) are declared with
string forward references and resolved lazily.
"""

import dataclasses
import typing
from typing import Any, Dict, Mapping, Type, TypeVar, Union

from botapi.domain.exceptions import DecodeError

T = TypeVar("T", bound="ApiObject")

_HINTS_CACHE: Dict[type, Dict[str, Any]] = {}


def wire_name(field_name: str) -> str:
    """Maps a Python field name to its wire key (``from_`` -> ``from``)."""
    return field_name[:-1] if field_name.endswith("_") else field_name


def _type_hints(cls: type) -> Dict[str, Any]:
    hints = _HINTS_CACHE.get(cls)
    if hints is None:
        hints = typing.get_type_hints(cls)
        _HINTS_CACHE[cls] = hints
    return hints


def _decode_value(tp: Any, value: Any, where: str) -> Any:
    if tp is Any:
        return value

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is Union:
        if value is None:
            return None
        candidates = [arg for arg in args if arg is not type(None)]
        last_error = None
        for candidate in candidates:
            try:
                return _decode_value(candidate, value, where)
            except DecodeError as e:
                last_error = e
        raise DecodeError(f"{where}: no matching type in {tp}") from last_error

    if origin in (tuple, list):
        if not isinstance(value, (list, tuple)):
            raise DecodeError(f"{where}: expected array, got {type(value).__name__}")
        item_type = args[0] if args else Any
        return tuple(_decode_value(item_type, item, f"{where}[{i}]") for i, item in enumerate(value))

    if origin is dict:
        if not isinstance(value, Mapping):
            raise DecodeError(f"{where}: expected object, got {type(value).__name__}")
        return dict(value)

    if isinstance(tp, type) and issubclass(tp, ApiObject):
        return tp.from_dict(value, _where=where)

    if tp is bool:
        if not isinstance(value, bool):
            raise DecodeError(f"{where}: expected boolean, got {type(value).__name__}")
        return value
    if tp is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise DecodeError(f"{where}: expected integer, got {type(value).__name__}")
        return value
    if tp is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecodeError(f"{where}: expected number, got {type(value).__name__}")
        return float(value)
    if tp is str:
        if not isinstance(value, str):
            raise DecodeError(f"{where}: expected string, got {type(value).__name__}")
        return value

    return value


def encode_value(value: Any, omit_none: bool) -> Any:
    if isinstance(value, ApiObject):
        return value.to_dict(omit_none=omit_none)
    if isinstance(value, (list, tuple)):
        return [encode_value(item, omit_none) for item in value]
    if isinstance(value, Mapping):
        return {key: encode_value(item, omit_none) for key, item in value.items()}
    return value


@dataclasses.dataclass(frozen=True)
class ApiObject:
    """Base for typed objects exchanged with the remote API.

    Field names map one-to-one to wire keys; a trailing underscore is dropped
    so reserved words can be used (``from_``). Unknown wire keys are ignored.
    """

    @classmethod
    def from_dict(cls: Type[T], data: Any, _where: str = "") -> T:
        """Decodes a JSON object into an instance of this type.

        Raises:
            DecodeError: If the payload is not an object, a required field is
                missing, or a field has the wrong shape.
        """
        where = _where or cls.__name__
        if not isinstance(data, Mapping):
            raise DecodeError(f"{where}: expected object, got {type(data).__name__}")

        hints = _type_hints(cls)
        kwargs: Dict[str, Any] = {}
        for field in dataclasses.fields(cls):
            if not field.init:
                continue
            key = wire_name(field.name)
            value = data.get(key)
            if value is None:
                if field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING:
                    raise DecodeError(f"{where}: missing required field '{key}'")
                continue
            kwargs[field.name] = _decode_value(hints[field.name], value, f"{where}.{key}")
        return cls(**kwargs)

    def to_dict(self, omit_none: bool = True) -> Dict[str, Any]:
        """Encodes this object for the wire.

        Args:
            omit_none: Drop unset (None) fields. When False every field is
                emitted, unset ones as null.
        """
        result: Dict[str, Any] = {}
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if value is None and omit_none:
                continue
            result[wire_name(field.name)] = encode_value(value, omit_none)
        return result
