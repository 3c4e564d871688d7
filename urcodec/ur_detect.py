"""
Format Detection — classify raw input text
===========================================

Rules, first match wins:
  1. several lines that all contain "ur:", or one line carrying a part
     marker (ur:type/3-10/... or ur:type/3of10/...)        -> multiur
  2. starts with "ur:"                                     -> ur
  3. non-empty, even length, hex digits only                -> hex
  4. every token is four letters, or letters only with an
     even length >= 4 (minimal bytewords)                   -> bytewords
  5. anything else                                          -> None

Decoded (JSON) input is never auto-detected; the caller must select it.
"""

import re
from typing import Optional

from urcodec.ur_types import UR_PREFIX, Format

_PART_MARKER = re.compile(r"^ur:[a-z0-9-]+/\d+(?:-|of)\d+/", re.IGNORECASE)
_HEX = re.compile(r"^[0-9a-fA-F]+$")
_WORD = re.compile(r"^[a-z]{4}$")
_MINIMAL = re.compile(r"^[a-z]+$")


def detect_format(text: str) -> Optional[Format]:
    trimmed = (text or "").strip()
    if not trimmed:
        return None
    lowered = trimmed.lower()

    lines = [line.strip() for line in lowered.splitlines() if line.strip()]
    if len(lines) > 1 and all(UR_PREFIX in line for line in lines):
        return Format.MULTI_PART
    if len(lines) == 1 and _PART_MARKER.match(lines[0]):
        return Format.MULTI_PART

    if lowered.startswith(UR_PREFIX):
        return Format.SINGLE

    if _HEX.match(trimmed) and len(trimmed) % 2 == 0:
        return Format.HEX

    words = lowered.split()
    if words and all(_WORD.match(w) for w in words):
        return Format.BYTEWORDS
    if _MINIMAL.match(lowered) and len(lowered) % 2 == 0 and len(lowered) >= 4:
        return Format.BYTEWORDS

    return None
