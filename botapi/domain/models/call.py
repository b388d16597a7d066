"""Outbound calls and presence-aware parameter encoding.

A parameter can be absent (not sent at all) or explicitly null, and the two
are kept apart with the ``ABSENT`` sentinel. How absent parameters reach the
wire is an encoding strategy chosen per call, not a property of the value.
"""

import enum
import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .base import ApiObject, encode_value
from .common import MethodName


class _Absent:
    """Marker for a parameter that was never set."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()


class Encoding(enum.Enum):
    """How absent parameters are written to the wire."""
    OMIT_ABSENT = "omit_absent"  # drop absent fields (JSON bodies, forms)
    EMIT_ALL = "emit_all"        # write absent fields as null (positional formats)


@dataclass(frozen=True)
class Attachment:
    """Binary payload sent alongside a call as a multipart file part."""
    field_name: str
    data: bytes
    filename: str = "file"
    content_type: str = "application/octet-stream"

    def __repr__(self) -> str:
        return f"Attachment(field_name={self.field_name!r}, filename={self.filename!r}, size={len(self.data)})"


@dataclass(frozen=True)
class OutboundCall:
    """An immutable, fully built call: method, parameters, optional attachment."""
    method: MethodName
    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    attachment: Optional[Attachment] = None
    encoding: Encoding = Encoding.OMIT_ABSENT

    def encoded_params(self) -> Dict[str, Any]:
        """Returns parameters as JSON-ready values under this call's encoding."""
        return encode_params(self.params, self.encoding)

    @property
    def chat_id(self) -> Any:
        return self.params.get("chat_id")


def encode_params(params: Mapping[str, Any], encoding: Encoding = Encoding.OMIT_ABSENT) -> Dict[str, Any]:
    """Encodes call parameters.

    Under ``OMIT_ABSENT`` absent parameters are dropped; under ``EMIT_ALL``
    they are written as null. Explicit None is always written as null.
    Typed objects follow the same strategy for their own unset fields.
    """
    omit = encoding is Encoding.OMIT_ABSENT
    encoded: Dict[str, Any] = {}
    for name, value in params.items():
        if value is ABSENT:
            if omit:
                continue
            encoded[name] = None
            continue
        if isinstance(value, ApiObject):
            encoded[name] = value.to_dict(omit_none=omit)
        else:
            encoded[name] = encode_value(value, omit)
    return encoded


def to_form_fields(encoded: Mapping[str, Any]) -> Dict[str, str]:
    """Flattens encoded parameters to strings; non-strings are sent as JSON."""
    fields: Dict[str, str] = {}
    for name, value in encoded.items():
        if isinstance(value, str):
            fields[name] = value
        else:
            fields[name] = json.dumps(value)
    return fields


class CallBuilder:
    """Builds an ``OutboundCall``. Each builder produces at most one call.

    Example:
        call = CallBuilder("sendMessage").params(chat_id=1, text="hi").build()
    """

    def __init__(self, method: str):
        self._method = MethodName(method)
        self._params: Dict[str, Any] = {}
        self._attachment: Optional[Attachment] = None
        self._encoding = Encoding.OMIT_ABSENT
        self._built = False

    def param(self, name: str, value: Any = ABSENT) -> "CallBuilder":
        self._params[name] = value
        return self

    def params(self, **values: Any) -> "CallBuilder":
        self._params.update(values)
        return self

    def attach(
        self,
        field_name: str,
        data: bytes,
        filename: str = "file",
        content_type: str = "application/octet-stream",
    ) -> "CallBuilder":
        self._attachment = Attachment(field_name, bytes(data), filename, content_type)
        return self

    def encoding(self, encoding: Encoding) -> "CallBuilder":
        self._encoding = encoding
        return self

    def build(self) -> OutboundCall:
        if self._built:
            raise RuntimeError(f"CallBuilder for '{self._method}' was already built")
        self._built = True
        return OutboundCall(
            method=self._method,
            params=MappingProxyType(dict(self._params)),
            attachment=self._attachment,
            encoding=self._encoding,
        )
