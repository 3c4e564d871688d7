"""
UR Types & Constants — Uniform Resource conversion core
========================================================

Foundational type definitions, constants, enumerations, and error classes
for the urcodec system. Wire structures that travel inside a UR carry their
own pack/unpack pair, the same way every other binary structure here does.

Standards:
  - BCR-2020-005 Uniform Resources (UR string grammar, multi-part parts)
  - BCR-2020-012 Bytewords (word table, CRC-32 suffix)
  - RFC 8949 CBOR (payload and fragment encoding)
"""

import re
import zlib
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Optional

import cbor2

# ═══════════════════════════════════════════════════════════════
# PREFIX, DEFAULTS & LIMITS
# ═══════════════════════════════════════════════════════════════

UR_PREFIX = "ur:"

# Used when neither the resolver nor the caller supplies a type
FALLBACK_TYPE = "unknown-tag"

# Conversion cache size (entries), evicted in insertion order
DEFAULT_CACHE_CAPACITY = 120

# Fountain generator defaults
DEFAULT_MAX_FRAGMENT_LENGTH = 90
DEFAULT_MIN_FRAGMENT_LENGTH = 10
DEFAULT_FIRST_SEQ_NUM = 0
DEFAULT_REPEAT_AFTER_RATIO = 1.5

# Cross-session handoff lifetime (seconds)
DEFAULT_HANDOFF_TTL = 3600

MAX_UINT32 = 0xFFFFFFFF

TYPE_TAG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


# ═══════════════════════════════════════════════════════════════
# FORMATS
# ═══════════════════════════════════════════════════════════════

class Format(str, Enum):
    """Every representation a conversion can read or produce."""
    MULTI_PART         = "multiur"
    SINGLE             = "ur"
    BYTEWORDS          = "bytewords"
    HEX                = "hex"
    DECODED_JSON       = "decoded-json"
    DECODED_DIAGNOSTIC = "decoded-diagnostic"
    DECODED_COMMENTED  = "decoded-commented"
    DECODED_PYTHON     = "decoded-python"
    DIAGNOSTIC         = "diagnostic"      # EDN text typed by hand

    @property
    def stage(self) -> "Stage":
        return normalize_format(self)

    @property
    def is_decoded(self) -> bool:
        return self.stage is Stage.DECODED


class Stage(str, Enum):
    """Pipeline stages. All decoded presentations collapse onto DECODED."""
    MULTI_PART = "multiur"
    SINGLE     = "ur"
    BYTEWORDS  = "bytewords"
    HEX        = "hex"
    DECODED    = "decoded"


# Decoded presentations that can be parsed back into a value
DECODED_SOURCE_FORMATS = frozenset({Format.DECODED_JSON, Format.DIAGNOSTIC})


class BytewordsStyle(str, Enum):
    STANDARD = "standard"  # "able acid also"
    URI      = "uri"       # "able-acid-also"
    MINIMAL  = "minimal"   # "aeadao"

    @classmethod
    def coerce(cls, value) -> "BytewordsStyle":
        """Unknown or empty styles fall back to MINIMAL."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").lower())
        except ValueError:
            return cls.MINIMAL


def normalize_format(fmt) -> Stage:
    """Map a Format (or its string name) onto its pipeline stage."""
    name = fmt.value if isinstance(fmt, Enum) else str(fmt)
    if name.startswith("decoded") or name == "diagnostic":
        return Stage.DECODED
    try:
        return Stage(name)
    except ValueError:
        raise UnsupportedFormatError(f"Unsupported format: {name}")


def coerce_format(fmt, error=None) -> Format:
    """`error` picks the UnsupportedFormatError subclass naming the role."""
    if isinstance(fmt, Format):
        return fmt
    try:
        return Format(str(fmt))
    except ValueError:
        raise (error or UnsupportedFormatError)(f"Unsupported format: {fmt}")


# ═══════════════════════════════════════════════════════════════
# ERROR CLASSES
# ═══════════════════════════════════════════════════════════════

class UrCodecError(Exception):
    """Base error for all urcodec operations."""
    pass

# Raised at the orchestrator boundary
ConversionError = UrCodecError

class EmptyInputError(UrCodecError):
    pass

class FormatDetectionError(UrCodecError):
    """Input matched no auto-detection rule."""
    pass

# ── parse errors ──

class ParseError(UrCodecError):
    """Malformed textual input. Never retried."""
    pass

class InvalidHexError(ParseError):
    pass

class InvalidStructuredValueError(ParseError):
    pass

class MalformedUrError(ParseError):
    pass

class InvalidBytewordsError(ParseError):
    pass

class InvalidFragmentError(ParseError):
    """Fragment body is not a well-formed [seq, len, msgLen, crc, data] array."""
    pass

# ── validation errors ──

class ValidationError(UrCodecError):
    """Caller-supplied parameters rejected before any encoding work."""
    pass

class InvalidTypeTagError(ValidationError):
    pass

class FountainParameterError(ValidationError):
    pass

class UnsupportedFormatError(ValidationError):
    pass

class UnsupportedSourceError(UnsupportedFormatError):
    pass

class UnsupportedTargetError(UnsupportedFormatError):
    pass

# ── assembly errors ──

class AssemblyError(UrCodecError):
    """Multi-part reassembly is not (yet) possible."""

    def __init__(self, message: str, progress: float = 0.0):
        super().__init__(message)
        self.progress = progress

class IncompleteAssemblyError(AssemblyError):
    pass

class FragmentMismatchError(AssemblyError):
    pass

class ChecksumMismatchError(AssemblyError):
    pass

# ── resolution errors ──

class ResolutionError(UrCodecError):
    pass

class NotRegisteredError(ResolutionError):
    """The resolver has no semantic type for these bytes."""
    pass

class DecodeFailedError(ResolutionError):
    """The bytes are not a decodable CBOR item."""
    pass

class HandoffExpiredError(UrCodecError):
    pass


class FragmentMismatchWarning(UserWarning):
    """A fragment from a different message arrived mid-assembly."""
    pass


# ═══════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Payload:
    """
    One decoded UR: CBOR bytes plus the type tag that travels with them.

    `value` is only populated when something already decoded the bytes;
    it is never consulted for equality.
    """
    cbor: bytes
    type_tag: str
    value: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        validate_type_tag(self.type_tag)
        if not isinstance(self.cbor, (bytes, bytearray)):
            raise TypeError("Payload.cbor must be bytes")
        object.__setattr__(self, "cbor", bytes(self.cbor))

    @property
    def hex(self) -> str:
        return self.cbor.hex()


@dataclass(frozen=True)
class FragmentPart:
    """
    One fountain part as carried in a multi-part UR body.

    Wire format (CBOR array of 5):
        seq_num     : uint   — 1-based, wraps at 2^32
        seq_len     : uint   — number of original blocks
        message_len : uint   — unpadded message length
        checksum    : uint   — CRC-32 of the whole message
        data        : bstr   — XOR of the chosen blocks
    """
    seq_num: int
    seq_len: int
    message_len: int
    checksum: int
    data: bytes

    def pack(self) -> bytes:
        """Serialize to wire format."""
        return cbor2.dumps([self.seq_num, self.seq_len, self.message_len,
                            self.checksum, bytes(self.data)])

    @classmethod
    def unpack(cls, data: bytes) -> "FragmentPart":
        """Deserialize from wire format."""
        try:
            decoded = cbor2.loads(data)
        except (cbor2.CBORDecodeError, ValueError) as e:
            raise InvalidFragmentError(f"Fragment body is not CBOR: {e}")

        if not isinstance(decoded, list) or len(decoded) != 5:
            raise InvalidFragmentError("Fragment body must be a 5-element array")
        seq_num, seq_len, message_len, checksum, body = decoded
        for name, v in (("seq_num", seq_num), ("seq_len", seq_len),
                        ("message_len", message_len), ("checksum", checksum)):
            if not isinstance(v, int) or isinstance(v, bool) or not 0 <= v <= MAX_UINT32:
                raise InvalidFragmentError(f"Fragment {name} out of range: {v!r}")
        if not isinstance(body, bytes):
            raise InvalidFragmentError("Fragment data must be a byte string")
        part = cls(seq_num=seq_num, seq_len=seq_len, message_len=message_len,
                   checksum=checksum, data=body)
        part.check_geometry()
        return part

    def check_geometry(self):
        """Header must describe exactly seq_len blocks of len(data) bytes."""
        fragment_len = len(self.data)
        if self.seq_len < 1 or self.message_len < 1 or not fragment_len:
            raise InvalidFragmentError("Fragment declares an empty message")
        if self.seq_len != -(-self.message_len // fragment_len):
            raise InvalidFragmentError(
                f"Fragment header is inconsistent: {self.message_len} bytes in "
                f"blocks of {fragment_len} cannot make {self.seq_len} blocks"
            )


# ═══════════════════════════════════════════════════════════════
# UTILITY FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def crc32_int(data: bytes) -> int:
    """CRC-32 (ISO-HDLC), as an unsigned int."""
    return zlib.crc32(data) & MAX_UINT32

def crc32_bytes(data: bytes) -> bytes:
    """CRC-32 as 4 big-endian bytes."""
    return crc32_int(data).to_bytes(4, "big")

def is_valid_type_tag(value: str) -> bool:
    return bool(value) and TYPE_TAG_PATTERN.match(value) is not None

def validate_type_tag(value: str) -> str:
    if not isinstance(value, str) or not is_valid_type_tag(value):
        raise InvalidTypeTagError(
            f"Invalid type {value!r}: use lowercase a-z, 0-9 and single "
            f"hyphens between segments"
        )
    return value

def sanitize_type_tag(value: Optional[str]) -> str:
    """
    Best-effort repair of a user-typed tag. May return "" when nothing
    usable is left; callers treat that as "no override".
    """
    if not value:
        return ""
    v = value.lower()
    v = re.sub(r"\s+", "-", v)
    v = re.sub(r"[^a-z0-9-]+", "", v)
    v = re.sub(r"-{2,}", "-", v)
    return v.strip("-")

def xor_into(target: bytearray, other: bytes) -> bytearray:
    """XOR `other` into `target` in place. Lengths must match."""
    for i, b in enumerate(other):
        target[i] ^= b
    return target
