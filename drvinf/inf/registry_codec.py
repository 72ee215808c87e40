# drvinf/inf/registry_codec.py
# -*- coding: utf-8 -*-
"""
Registry values as they appear inside INF AddReg directives:

    HKLM,"SYSTEM\\CurrentControlSet\\Services\\foo","Start",0x00010001,0

Data is encoded according to the kind selected by the type-flags field.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.exceptions import (
    DecodeError,
    InvalidValueError,
    MalformedDocumentError,
    UnrepresentableKindError,
    UnsupportedValueKind,
)
from ..core.logger import get_logger
from .document import get_comma_separated_values, try_get_value
from .quoting import quote, unquote

logger: logging.Logger = get_logger("registry")

# ---------------------------
# Kinds + AddReg type flags
# ---------------------------


class RegistryValueKind(Enum):
    """Values are the Windows REG_* type codes."""
    UNKNOWN = -1
    STRING = 1
    EXPAND_STRING = 2
    BINARY = 3
    DWORD = 4
    MULTI_STRING = 7
    QWORD = 11


# https://learn.microsoft.com/windows-hardware/drivers/install/inf-addreg-directive
FLG_ADDREG_TYPE_SZ = 0x00000000
FLG_ADDREG_BINVALUETYPE = 0x00000001
FLG_ADDREG_TYPE_MULTI_SZ = 0x00010000
FLG_ADDREG_TYPE_DWORD = 0x00010001
FLG_ADDREG_TYPE_EXPAND_SZ = 0x00020000
FLG_ADDREG_TYPE_NONE = 0x00020001

_TYPE_MASK = FLG_ADDREG_TYPE_DWORD | FLG_ADDREG_TYPE_EXPAND_SZ

_KIND_BY_FLAGS: Dict[int, RegistryValueKind] = {
    FLG_ADDREG_TYPE_SZ: RegistryValueKind.STRING,
    FLG_ADDREG_BINVALUETYPE: RegistryValueKind.BINARY,
    FLG_ADDREG_TYPE_MULTI_SZ: RegistryValueKind.MULTI_STRING,
    FLG_ADDREG_TYPE_DWORD: RegistryValueKind.DWORD,
    FLG_ADDREG_TYPE_EXPAND_SZ: RegistryValueKind.EXPAND_STRING,
}

_KIND_BY_TYPE_NAME: Dict[str, RegistryValueKind] = {
    "REG_SZ": RegistryValueKind.STRING,
    "REG_EXPAND_SZ": RegistryValueKind.EXPAND_STRING,
    "REG_MULTI_SZ": RegistryValueKind.MULTI_STRING,
    "REG_DWORD": RegistryValueKind.DWORD,
    "REG_QWORD": RegistryValueKind.QWORD,
    "REG_BINARY": RegistryValueKind.BINARY,
}

_INT32_MIN = -(1 << 31)
_UINT32_MAX = (1 << 32) - 1
_INT64_MIN = -(1 << 63)
_UINT64_MAX = (1 << 64) - 1


def kind_from_flags(flags: int) -> RegistryValueKind:
    return _KIND_BY_FLAGS.get(flags & _TYPE_MASK, RegistryValueKind.UNKNOWN)


def kind_from_type_name(type_name: str) -> RegistryValueKind:
    """txtsetup.oem style names: REG_SZ, REG_DWORD, ..."""
    return _KIND_BY_TYPE_NAME.get(type_name.strip(), RegistryValueKind.UNKNOWN)


def type_flags_hex(kind: RegistryValueKind) -> str:
    if kind is RegistryValueKind.QWORD:
        # the AddReg documentation defines no flag value for REG_QWORD
        raise UnrepresentableKindError(msg="REG_QWORD has no AddReg type flag")
    for flags, k in _KIND_BY_FLAGS.items():
        if k is kind:
            return f"0x{flags:08X}"
    return f"0x{FLG_ADDREG_TYPE_NONE:08X}"


def parse_type_flags(text: str) -> int:
    """Decimal or 0x-prefixed hex; an empty field means REG_SZ."""
    s = text.strip()
    if not s:
        return 0
    try:
        if s[:2].lower() == "0x":
            return int(s[2:], 16)
        return int(s, 10)
    except ValueError as e:
        raise DecodeError(msg=f"Invalid AddReg type flags: {s!r}", cause=e)


# ---------------------------
# Values
# ---------------------------


@dataclass(frozen=True)
class RegistryValue:
    kind: RegistryValueKind
    data: Any = None

    @classmethod
    def string(cls, s: str) -> "RegistryValue":
        return cls(RegistryValueKind.STRING, s)

    @classmethod
    def expand_string(cls, s: str) -> "RegistryValue":
        return cls(RegistryValueKind.EXPAND_STRING, s)

    @classmethod
    def multi_string(cls, items: Sequence[str]) -> "RegistryValue":
        return cls(RegistryValueKind.MULTI_STRING, list(items))

    @classmethod
    def dword(cls, v: int) -> "RegistryValue":
        return cls(RegistryValueKind.DWORD, v)

    @classmethod
    def qword(cls, v: int) -> "RegistryValue":
        return cls(RegistryValueKind.QWORD, v)

    @classmethod
    def binary(cls, b: bytes) -> "RegistryValue":
        return cls(RegistryValueKind.BINARY, bytes(b))


def _parse_hex(text: str, lo: int, hi: int, what: str) -> int:
    try:
        v = int(text, 16)
    except ValueError as e:
        raise DecodeError(msg=f"Invalid {what} value: {text!r}", cause=e)
    if v < lo or v > hi:
        raise DecodeError(msg=f"{what} value out of range: {text!r}")
    return v


def _to_signed(v: int, bits: int) -> int:
    return v - (1 << bits) if v >= (1 << (bits - 1)) else v


def _unquote_tolerant(text: str, what: str) -> str:
    s = unquote(text)
    if s != text:
        logger.warning("Tolerating quoted %s value: %s", what, text)
    return s


def decode(value_data: str, kind: RegistryValueKind) -> RegistryValue:
    """
    Parse AddReg value data. Numbers are always hexadecimal, with or
    without a 0x prefix ("10" is 16).
    """
    data = value_data.strip()
    if kind in (RegistryValueKind.STRING, RegistryValueKind.EXPAND_STRING):
        return RegistryValue(kind, unquote(data))

    if kind is RegistryValueKind.MULTI_STRING:
        if not data:
            return RegistryValue.multi_string([])
        items = [unquote(v).replace('""', '"') for v in get_comma_separated_values(data)]
        return RegistryValue.multi_string(items)

    if kind is RegistryValueKind.DWORD:
        # Intel E1000 8.10.3.0 quotes its DWORDs; Windows accepts it, so do we
        s = _unquote_tolerant(data, "DWORD")
        return RegistryValue.dword(_to_signed(_parse_hex(s, _INT32_MIN, _UINT32_MAX, "DWORD"), 32))

    if kind is RegistryValueKind.QWORD:
        s = _unquote_tolerant(data, "QWORD")
        return RegistryValue.qword(_to_signed(_parse_hex(s, _INT64_MIN, _UINT64_MAX, "QWORD"), 64))

    if kind is RegistryValueKind.BINARY:
        if not data:
            return RegistryValue.binary(b"")
        out = bytearray()
        for token in get_comma_separated_values(data):
            # VIA Rhine III 3.41.0.0426 quotes every byte
            out.append(_parse_hex(_unquote_tolerant(token, "binary byte"), 0, 0xFF, "binary byte"))
        return RegistryValue.binary(bytes(out))

    raise UnsupportedValueKind(msg=f"Decoding {kind.name} registry values is not implemented")


def format_multi_string(items: Sequence[str]) -> str:
    """Each string quoted separately, embedded quotes doubled. No strings is empty data."""
    return ",".join(quote(s.replace('"', '""')) for s in items)


def format_binary(data: bytes) -> str:
    return ",".join(f"{b:02X}" for b in data)


def _invalid(kind: RegistryValueKind, data: Any) -> InvalidValueError:
    return InvalidValueError(msg=f"Invalid {kind.name} value: {type(data).__name__}")


def encode(value: Any, kind: RegistryValueKind) -> str:
    """
    Inverse of decode(). `value` is a RegistryValue or plain Python data
    (str, list of str, int, bytes).
    """
    if isinstance(value, RegistryValue):
        if value.kind is not kind:
            raise InvalidValueError(msg=f"Value of kind {value.kind.name} cannot be encoded as {kind.name}")
        data = value.data
    else:
        data = value

    if kind in (RegistryValueKind.STRING, RegistryValueKind.EXPAND_STRING):
        if isinstance(data, str):
            return quote(data)
        raise _invalid(kind, data)

    if kind is RegistryValueKind.MULTI_STRING:
        if isinstance(data, (list, tuple)) and all(isinstance(s, str) for s in data):
            return format_multi_string(data)
        raise _invalid(kind, data)

    if kind is RegistryValueKind.DWORD:
        if isinstance(data, int) and not isinstance(data, bool) and _INT32_MIN <= data <= _UINT32_MAX:
            return f"0x{data & 0xFFFFFFFF:08X}"
        raise _invalid(kind, data)

    if kind is RegistryValueKind.QWORD:
        raise UnrepresentableKindError(msg="REG_QWORD values cannot be written to an AddReg directive")

    if kind is RegistryValueKind.BINARY:
        if isinstance(data, (bytes, bytearray)):
            return format_binary(bytes(data))
        raise _invalid(kind, data)

    raise _invalid(kind, data)


# ---------------------------
# AddReg directive lines
# ---------------------------


@dataclass
class AddRegEntry:
    hive: str
    sub_key: str
    value_name: str
    flags: int
    kind: RegistryValueKind
    raw_data: str
    value: Optional[RegistryValue]


def parse_add_reg_line(line: str, expand: Optional[Callable[[str], str]] = None) -> AddRegEntry:
    """
    `Hive,"SubKey","ValueName",TypeFlags,Data`. `expand` resolves %tokens%
    in the flags field and in REG_SZ data.
    """
    values: List[str] = get_comma_separated_values(line)
    if len(values) < 2 or not values[0]:
        raise MalformedDocumentError(msg=f"Invalid AddReg line: {line.strip()}")
    hive = values[0]
    sub_key = unquote(values[1])
    value_name = unquote(try_get_value(values, 2))
    flags_text = try_get_value(values, 3)
    if expand is not None:
        flags_text = expand(flags_text)
    flags = parse_type_flags(flags_text)
    kind = kind_from_flags(flags)
    raw = ",".join(values[4:])
    if kind is RegistryValueKind.STRING and expand is not None:
        raw = expand(raw)
    value = decode(raw, kind) if kind is not RegistryValueKind.UNKNOWN else None
    return AddRegEntry(hive, sub_key, value_name, flags, kind, raw, value)
