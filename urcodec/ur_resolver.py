"""
Type Resolver — bytes <-> semantic UR type
===========================================

The converter never sniffs decoded values to guess what they are. It asks a
resolver, which either names the type or says NotRegisteredError.

    decode(cbor_bytes) -> DecodedValue(value, type_tag)   | NotRegisteredError
    encode(value, type_tag) -> cbor_bytes

TagRegistryResolver answers from a table of CBOR tag numbers: a payload
whose outermost item is a registered tag resolves to that tag's UR type,
and its UR body is the untagged inner item.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import cbor2

from urcodec.ur_types import (
    NotRegisteredError, DecodeFailedError, InvalidTypeTagError,
    validate_type_tag,
)


# Blockchain Commons registry (BCR-2020-006)
DEFAULT_TAG_REGISTRY = {
    40300: "seed",
    40303: "hdkey",
    40304: "keypath",
    40305: "coin-info",
    40306: "eckey",
    40307: "address",
    40308: "output-descriptor",
    40310: "psbt",
    40311: "account-descriptor",
}


@dataclass(frozen=True)
class DecodedValue:
    value: Any
    type_tag: Optional[str] = None


def loads(data: bytes) -> Any:
    """Plain CBOR decode; DecodeFailedError on anything malformed."""
    try:
        return cbor2.loads(data)
    except (cbor2.CBORDecodeError, ValueError, TypeError) as e:
        raise DecodeFailedError(f"CBOR decode failed: {e}")


def dumps(value: Any) -> bytes:
    try:
        return cbor2.dumps(value)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as e:
        raise DecodeFailedError(f"CBOR encode failed: {e}")


class TypeResolver:
    """Interface. Subclasses override both methods."""

    def decode(self, data: bytes) -> DecodedValue:
        raise NotRegisteredError("No resolver configured")

    def encode(self, value: Any, type_tag: str) -> bytes:
        return dumps(value)


class TagRegistryResolver(TypeResolver):
    """
    Resolves by outermost CBOR tag.

    Usage:
        resolver = TagRegistryResolver()
        resolver.register(40300, "seed")
        resolver.decode(cbor2.dumps(CBORTag(40300, {1: b"..."})))
        # -> DecodedValue(value={1: b"..."}, type_tag="seed")
    """

    def __init__(self, registry: Optional[Dict[int, str]] = None):
        self._by_tag: Dict[int, str] = {}
        self._by_type: Dict[str, int] = {}
        for tag, type_tag in (DEFAULT_TAG_REGISTRY if registry is None else registry).items():
            self.register(tag, type_tag)

    def register(self, tag: int, type_tag: str):
        validate_type_tag(type_tag)
        if type_tag in self._by_type and self._by_type[type_tag] != tag:
            raise InvalidTypeTagError(
                f"ur:{type_tag} already registered for tag {self._by_type[type_tag]}")
        self._by_tag[tag] = type_tag
        self._by_type[type_tag] = tag

    def decode(self, data: bytes) -> DecodedValue:
        item = loads(data)
        if isinstance(item, cbor2.CBORTag) and item.tag in self._by_tag:
            return DecodedValue(value=item.value, type_tag=self._by_tag[item.tag])
        raise NotRegisteredError("Payload does not carry a registered CBOR tag")

    def encode(self, value: Any, type_tag: str) -> bytes:
        """UR body for a registered type: the untagged item."""
        if isinstance(value, cbor2.CBORTag) and self._by_tag.get(value.tag) == type_tag:
            value = value.value
        return dumps(value)

