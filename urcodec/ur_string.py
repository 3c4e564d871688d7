"""
UR String Grammar — parse and compose `ur:` strings
====================================================

    ur:<type>/<body>                 single-part
    ur:<type>/<seq>-<total>/<body>   one part of a multi-part sequence

The body is always minimal bytewords. Parsing is case-insensitive because
QR alphanumeric mode delivers upper-case text. `<seq>of<total>` is accepted
as a legacy spelling of `<seq>-<total>`.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from urcodec import ur_bytewords as bytewords
from urcodec.ur_types import (
    UR_PREFIX, BytewordsStyle, FragmentPart, Payload,
    MalformedUrError, InvalidBytewordsError, is_valid_type_tag,
)

_SEQ_PATTERN = re.compile(r"^(\d+)(?:-|of)(\d+)$")


@dataclass(frozen=True)
class UrString:
    """A parsed (but not yet byteword-decoded) UR string."""
    type_tag: str
    body: str
    seq_num: Optional[int] = None
    seq_len: Optional[int] = None

    @property
    def is_fragment(self) -> bool:
        return self.seq_num is not None

    def decode_body(self) -> bytes:
        try:
            return bytewords.decode(self.body, BytewordsStyle.MINIMAL)
        except InvalidBytewordsError as e:
            raise MalformedUrError(f"Invalid UR body: {e}")


def parse(text: str) -> UrString:
    """Split a UR string into type, optional sequence marker, and body."""
    s = (text or "").strip().lower()
    if not s.startswith(UR_PREFIX):
        raise MalformedUrError("Invalid UR: missing 'ur:' prefix")

    components = s[len(UR_PREFIX):].split("/")
    if len(components) < 2 or not all(components):
        raise MalformedUrError("Invalid UR: expected ur:<type>/<body>")

    type_tag = components[0]
    if not is_valid_type_tag(type_tag):
        raise MalformedUrError(f"Invalid UR type: {type_tag!r}")

    if len(components) == 2:
        return UrString(type_tag=type_tag, body=components[1])

    if len(components) == 3:
        m = _SEQ_PATTERN.match(components[1])
        if not m:
            raise MalformedUrError(f"Invalid UR sequence component: {components[1]!r}")
        seq_num, seq_len = int(m.group(1)), int(m.group(2))
        if seq_num < 1 or seq_len < 1:
            raise MalformedUrError(f"Invalid UR sequence component: {components[1]!r}")
        return UrString(type_tag=type_tag, body=components[2],
                        seq_num=seq_num, seq_len=seq_len)

    raise MalformedUrError("Invalid UR: too many path components")


def payload_from_ur(text: str) -> Payload:
    """Decode a single-part UR string into a Payload."""
    ur = parse(text)
    if ur.is_fragment:
        raise MalformedUrError(
            f"UR part {ur.seq_num}-{ur.seq_len} is one fragment of a multi-part "
            f"UR; assemble all parts first"
        )
    return Payload(cbor=ur.decode_body(), type_tag=ur.type_tag)


def payload_to_ur(payload: Payload) -> str:
    return compose(payload.type_tag, payload.cbor)


def compose(type_tag: str, cbor: bytes) -> str:
    return f"{UR_PREFIX}{type_tag}/{bytewords.encode(cbor, BytewordsStyle.MINIMAL)}"


def compose_part(type_tag: str, part: FragmentPart) -> str:
    body = bytewords.encode(part.pack(), BytewordsStyle.MINIMAL)
    return f"{UR_PREFIX}{type_tag}/{part.seq_num}-{part.seq_len}/{body}"


def parse_part(text: str) -> Tuple[str, FragmentPart]:
    """
    Parse one multi-part UR line. Returns (type_tag, FragmentPart).

    The sequence marker in the path must agree with the CBOR part header.
    """
    ur = parse(text)
    if not ur.is_fragment:
        raise MalformedUrError("Not a multi-part UR fragment")
    part = FragmentPart.unpack(ur.decode_body())
    if (part.seq_num, part.seq_len) != (ur.seq_num, ur.seq_len):
        raise MalformedUrError(
            f"UR sequence {ur.seq_num}-{ur.seq_len} disagrees with part header "
            f"{part.seq_num}-{part.seq_len}"
        )
    return ur.type_tag, part
