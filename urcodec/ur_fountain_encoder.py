"""
Fountain Encoder — multi-part UR generation
=============================================

Splits a Payload's CBOR message into equal-length blocks and emits a
sequence of fragments:

  seq 1..n     : pure fragments, one block each (a full covering pass)
  seq n+s+1..  : mixed fragments, XOR of a pseudo-random block subset,
                 where s is FountainParams.first_seq_num

Modes (FountainParams.repeat_after_ratio):
  0     : unbounded stream, generated lazily
  r > 0 : finite cycle of max(n, ceil(r * n)) fragments, materialized
          eagerly and repeated from its first fragment

Every stream owns its encoder, so iterators never share a position.

A message that fits in one block yields a single-part UR instead.
"""

import math
import logging
import itertools
from dataclasses import dataclass
from typing import Iterator, List, Optional

from urcodec import ur_string
from urcodec.ur_random import choose_fragments
from urcodec.ur_types import (
    DEFAULT_MAX_FRAGMENT_LENGTH, DEFAULT_MIN_FRAGMENT_LENGTH,
    DEFAULT_FIRST_SEQ_NUM, DEFAULT_REPEAT_AFTER_RATIO, MAX_UINT32,
    FragmentPart, Payload, FountainParameterError,
    crc32_int, xor_into,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# PARAMETERS
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FountainParams:
    max_fragment_length: int = DEFAULT_MAX_FRAGMENT_LENGTH
    min_fragment_length: int = DEFAULT_MIN_FRAGMENT_LENGTH
    first_seq_num: int = DEFAULT_FIRST_SEQ_NUM
    repeat_after_ratio: float = DEFAULT_REPEAT_AFTER_RATIO

    @property
    def is_unbounded(self) -> bool:
        return self.repeat_after_ratio == 0

    def validate(self) -> "FountainParams":
        if self.min_fragment_length <= 0:
            raise FountainParameterError("Min fragment length must be positive")
        if self.min_fragment_length >= self.max_fragment_length:
            raise FountainParameterError(
                "Min fragment length must be less than max fragment length"
            )
        if not 0 <= self.first_seq_num <= MAX_UINT32:
            raise FountainParameterError("First sequence number must be a uint32")
        if self.repeat_after_ratio < 0:
            raise FountainParameterError("Repeat ratio must be >= 0")
        return self


# ═══════════════════════════════════════════════════════════════
# ENCODER
# ═══════════════════════════════════════════════════════════════

class FountainEncoder:
    """
    Block-level fountain encoder over raw message bytes.

    Usage:
        encoder = FountainEncoder(message, max_fragment_length=90)
        part = encoder.next_part()     # FragmentPart, seq 1

    The first seq_len parts are always the pure pass. first_seq_num only
    shifts where the mixed parts begin.
    """

    def __init__(self, message: bytes,
                 max_fragment_length: int = DEFAULT_MAX_FRAGMENT_LENGTH,
                 first_seq_num: int = DEFAULT_FIRST_SEQ_NUM,
                 min_fragment_length: int = DEFAULT_MIN_FRAGMENT_LENGTH):
        if not message:
            raise FountainParameterError("Cannot fragment an empty message")
        if len(message) > MAX_UINT32:
            raise FountainParameterError("Message too long for a fountain sequence")

        self.message_len = len(message)
        self.checksum = crc32_int(message)
        self.fragment_len = self.find_nominal_fragment_length(
            self.message_len, min_fragment_length, max_fragment_length)
        self.fragments = self.partition_message(message, self.fragment_len)
        self.first_seq_num = first_seq_num
        self.seq_num = 0
        self.emitted_count = 0

    @staticmethod
    def find_nominal_fragment_length(message_len: int, min_fragment_len: int,
                                     max_fragment_len: int) -> int:
        """Smallest fragment count whose block length fits under the max."""
        max_fragment_count = max(1, message_len // min_fragment_len)
        fragment_len = message_len
        for fragment_count in range(1, max_fragment_count + 1):
            fragment_len = math.ceil(message_len / fragment_count)
            if fragment_len <= max_fragment_len:
                break
        return fragment_len

    @staticmethod
    def partition_message(message: bytes, fragment_len: int) -> List[bytes]:
        """Fixed-length blocks; the last one is zero-padded."""
        fragments = []
        for start in range(0, len(message), fragment_len):
            fragments.append(message[start:start + fragment_len].ljust(fragment_len, b"\x00"))
        return fragments

    @property
    def seq_len(self) -> int:
        return len(self.fragments)

    @property
    def is_single_part(self) -> bool:
        return self.seq_len == 1

    @property
    def is_complete(self) -> bool:
        """True once a full pure pass has been emitted."""
        return self.emitted_count >= self.seq_len

    def next_part(self) -> FragmentPart:
        if self.seq_num == self.seq_len:
            self.seq_num += self.first_seq_num
        self.seq_num = (self.seq_num + 1) & MAX_UINT32
        self.emitted_count += 1
        indexes = choose_fragments(self.seq_num, self.seq_len, self.checksum)
        return FragmentPart(seq_num=self.seq_num, seq_len=self.seq_len,
                            message_len=self.message_len, checksum=self.checksum,
                            data=self.mix(indexes))

    def mix(self, indexes) -> bytes:
        result = bytearray(self.fragment_len)
        for i in indexes:
            xor_into(result, self.fragments[i])
        return bytes(result)


# ═══════════════════════════════════════════════════════════════
# FRAGMENT SEQUENCE
# ═══════════════════════════════════════════════════════════════

class FragmentSequence:
    """
    The UR-string view of a fountain encoder.

    Iterating a bounded sequence yields one cycle; iterating an unbounded
    one never stops (use itertools.islice or `take`).
    """

    def __init__(self, payload: Payload, params: FountainParams):
        self.payload = payload
        self.params = params.validate()
        self.encoder = self._new_encoder()
        self._cursor: Optional[Iterator[str]] = None
        self._parts: Optional[List[str]] = None
        if not self.is_unbounded:
            self._parts = self._materialize()

        logger.debug(
            "Fountain sequence for ur:%s: %d bytes in %d blocks of %d, ratio %s",
            payload.type_tag, self.encoder.message_len, self.pure_fragment_count,
            self.encoder.fragment_len, params.repeat_after_ratio,
        )

    @property
    def pure_fragment_count(self) -> int:
        return self.encoder.seq_len

    @property
    def is_single_part(self) -> bool:
        return self.encoder.is_single_part

    @property
    def is_unbounded(self) -> bool:
        return self.params.is_unbounded and not self.is_single_part

    @property
    def cycle_length(self) -> Optional[int]:
        """Fragments per finite cycle; None for an unbounded stream."""
        if self.is_single_part:
            return 1
        if self.is_unbounded:
            return None
        n = self.pure_fragment_count
        return max(n, math.ceil(self.params.repeat_after_ratio * n))

    @property
    def parts(self) -> List[str]:
        """All fragments of one finite cycle."""
        if self._parts is None:
            raise FountainParameterError("An unbounded sequence has no finite part list")
        return list(self._parts)

    def next_part(self) -> str:
        """Next UR string from this sequence's own stream (ignores the cycle)."""
        if self._cursor is None:
            self._cursor = self._stream()
        return next(self._cursor)

    def take(self, count: int) -> List[str]:
        return list(itertools.islice(self.loop(), count))

    def loop(self) -> Iterator[str]:
        """Endless frames: the finite cycle repeated, or the raw stream."""
        if self._parts is not None:
            return itertools.cycle(self._parts)
        return self._stream()

    def block_map(self, fragment: str) -> List[int]:
        """Bitmap of the original blocks combined into `fragment`."""
        _, part = ur_string.parse_part(fragment)
        indexes = choose_fragments(part.seq_num, part.seq_len, part.checksum)
        return [1 if i in indexes else 0 for i in range(part.seq_len)]

    def __iter__(self) -> Iterator[str]:
        if self._parts is not None:
            return iter(self._parts)
        return self._stream()

    def __len__(self) -> int:
        if self._parts is None:
            raise TypeError("An unbounded fragment sequence has no length")
        return len(self._parts)

    def _new_encoder(self) -> FountainEncoder:
        return FountainEncoder(
            self.payload.cbor,
            max_fragment_length=self.params.max_fragment_length,
            first_seq_num=self.params.first_seq_num,
            min_fragment_length=self.params.min_fragment_length,
        )

    def _stream(self) -> Iterator[str]:
        if self.is_single_part:
            single = ur_string.payload_to_ur(self.payload)
            while True:
                yield single
        encoder = self._new_encoder()
        while True:
            yield ur_string.compose_part(self.payload.type_tag, encoder.next_part())

    def _materialize(self) -> List[str]:
        return list(itertools.islice(self._stream(), self.cycle_length))


def generate(payload: Payload, params: Optional[FountainParams] = None) -> FragmentSequence:
    """Split a Payload into a finite or unbounded fragment sequence."""
    return FragmentSequence(payload, params or FountainParams())
