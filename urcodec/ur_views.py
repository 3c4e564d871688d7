"""
Decoded Views — presentations of one CBOR payload
===================================================

  decoded-json        : pretty JSON (bytes as hex, tags as {"tag", "value"})
  decoded-diagnostic  : RFC 8949 §8 diagnostic notation (cbor-diag)
  decoded-commented   : one CBOR head per line, hex on the left
  decoded-python      : pprint of the native value

All four share one decode step. A registered type (via the resolver) shows
its untagged inner value in the json and python views. Diagnostic notation
is rendered from the raw bytes, so it always shows the tags as sent.
"""

import json
import math
import struct
import datetime
from pprint import pformat
from typing import Any, List, Optional, Tuple

import cbor2
from cbor_diag import cbor2diag

from urcodec.ur_resolver import TypeResolver, loads
from urcodec.ur_types import (
    Format, NotRegisteredError, DecodeFailedError,
)

DIAGNOSTIC_FORMATS = frozenset({Format.DECODED_DIAGNOSTIC, Format.DIAGNOSTIC})


# ═══════════════════════════════════════════════════════════════
# ENTRY POINT
# ═══════════════════════════════════════════════════════════════

def render(data: bytes, fmt: Format,
           resolver: Optional[TypeResolver] = None,
           type_tag: Optional[str] = None) -> Tuple[str, Any]:
    """
    Render `data` in one decoded presentation.

    Returns (text, value). Raises DecodeFailedError if `data` is not CBOR.
    """
    value = loads(data)
    if resolver is not None:
        try:
            resolved = resolver.decode(data)
            value = resolved.value
            type_tag = resolved.type_tag
        except NotRegisteredError:
            pass

    if fmt in DIAGNOSTIC_FORMATS:
        return cbor2diag(data), value
    if fmt is Format.DECODED_COMMENTED:
        return comment(data), value
    if fmt is Format.DECODED_PYTHON:
        text = pformat(value, width=72)
        if type_tag:
            text = f"# ur:{type_tag}\n{text}"
        return text, value
    return json.dumps(to_jsonable(value), indent=2, ensure_ascii=False), value


# ═══════════════════════════════════════════════════════════════
# JSON
# ═══════════════════════════════════════════════════════════════

def to_jsonable(item: Any) -> Any:
    if isinstance(item, (bytes, bytearray)):
        return bytes(item).hex()
    if isinstance(item, cbor2.CBORTag):
        return {"tag": item.tag, "value": to_jsonable(item.value)}
    if isinstance(item, dict):
        return {(k if isinstance(k, str) else _json_key(k)): to_jsonable(v)
                for k, v in item.items()}
    if isinstance(item, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in item]
    if isinstance(item, cbor2.CBORSimpleValue):
        return item.value
    if item is cbor2.undefined:
        return None
    if isinstance(item, (datetime.datetime, datetime.date)):
        return item.isoformat()
    if isinstance(item, (str, int, float, bool)) or item is None:
        return item
    return str(item)


def _json_key(key: Any) -> str:
    if isinstance(key, (int, float)) and not isinstance(key, bool):
        return str(key)
    # Composite keys: show them the way diagnostic notation would
    return cbor2diag(cbor2.dumps(key))


# ═══════════════════════════════════════════════════════════════
# COMMENTED HEX
# ═══════════════════════════════════════════════════════════════

_INDENT = "   "


def comment(data: bytes) -> str:
    lines: List[Tuple[str, str]] = []
    pos = _comment_item(data, 0, 0, lines)
    if pos < len(data):
        lines.append((data[pos:].hex(), f"{len(data) - pos} trailing bytes"))
    width = max(len(hex_part) for hex_part, _ in lines)
    return "\n".join(f"{hex_part.ljust(width)}  # {desc}" for hex_part, desc in lines)


def _read_head(data: bytes, pos: int):
    """Returns (major, info, argument, head_end). argument is None for 31."""
    if pos >= len(data):
        raise DecodeFailedError("CBOR decode failed: unexpected end of data")
    initial = data[pos]
    major, info = initial >> 5, initial & 0x1F
    if info < 24:
        return major, info, info, pos + 1
    if info <= 27:
        size = 1 << (info - 24)
        end = pos + 1 + size
        if end > len(data):
            raise DecodeFailedError("CBOR decode failed: truncated head")
        return major, info, int.from_bytes(data[pos + 1:end], "big"), end
    if info == 31:
        return major, info, None, pos + 1
    raise DecodeFailedError(f"CBOR decode failed: reserved additional info {info}")


def _comment_item(data: bytes, pos: int, depth: int, lines: List[Tuple[str, str]]) -> int:
    start = pos
    major, info, arg, pos = _read_head(data, pos)
    head = _INDENT * depth + data[start:pos].hex()

    if major == 0:
        lines.append((head, f"unsigned({arg})"))
    elif major == 1:
        lines.append((head, f"negative({-1 - arg})"))
    elif major in (2, 3):
        kind = "bytes" if major == 2 else "text"
        if arg is None:
            lines.append((head, f"{kind}(*)"))
            while data[pos:pos + 1] != b"\xff":
                pos = _comment_item(data, pos, depth + 1, lines)
            lines.append((_INDENT * (depth + 1) + "ff", "break"))
            pos += 1
        else:
            content = data[pos:pos + arg]
            if len(content) != arg:
                raise DecodeFailedError("CBOR decode failed: truncated string")
            lines.append((head, f"{kind}({arg})"))
            if arg:
                if major == 2:
                    desc = f"h'{content.hex()}'"
                else:
                    desc = json.dumps(content.decode("utf-8", errors="replace"),
                                      ensure_ascii=False)
                lines.append((_INDENT * (depth + 1) + content.hex(), desc))
            pos += arg
    elif major in (4, 5):
        kind = "array" if major == 4 else "map"
        per_entry = 1 if major == 4 else 2
        if arg is None:
            lines.append((head, f"{kind}(*)"))
            while data[pos:pos + 1] != b"\xff":
                if pos >= len(data):
                    raise DecodeFailedError("CBOR decode failed: missing break")
                pos = _comment_item(data, pos, depth + 1, lines)
            lines.append((_INDENT * (depth + 1) + "ff", "break"))
            pos += 1
        else:
            lines.append((head, f"{kind}({arg})"))
            for _ in range(arg * per_entry):
                pos = _comment_item(data, pos, depth + 1, lines)
    elif major == 6:
        lines.append((head, f"tag({arg})"))
        pos = _comment_item(data, pos, depth + 1, lines)
    else:
        lines.append((head, _describe_simple(data, start, info, arg)))
    return pos


def _describe_simple(data: bytes, start: int, info: int, arg) -> str:
    if info == 20:
        return "false"
    if info == 21:
        return "true"
    if info == 22:
        return "null"
    if info == 23:
        return "undefined"
    if info <= 24:
        return f"simple({arg})"
    if info in (25, 26, 27):
        fmt = {25: ">e", 26: ">f", 27: ">d"}[info]
        size = struct.calcsize(fmt)
        value = struct.unpack(fmt, data[start + 1:start + 1 + size])[0]
        return f"float({_float_text(value)})"
    raise DecodeFailedError("CBOR decode failed: unexpected break")


def _float_text(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(value)
