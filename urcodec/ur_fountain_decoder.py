"""
Fountain Decoder — multi-part UR reassembly
=============================================

Accumulates fragments, in any order and with any amount of repetition,
until every original block is resolved.

Two layers:
  FountainDecoder   : block level. Takes FragmentParts, runs the peeling
                      process (simple parts resolve blocks, mixed parts are
                      reduced by every resolved block and by each other).
  MultiPartDecoder  : UR text level. Parses `ur:type/seq-len/...` lines,
                      enforces a single type tag per session, turns
                      cross-message fragments into warnings.

Reduction is driven by an explicit work queue: any part reduced to a single
block is queued, and the queue is drained until it is empty or the message
is complete.
"""

import logging
import warnings
from collections import deque
from typing import Deque, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from urcodec import ur_string
from urcodec.ur_random import choose_fragments
from urcodec.ur_types import (
    FragmentPart, Payload,
    MalformedUrError, FragmentMismatchError, IncompleteAssemblyError,
    ChecksumMismatchError, FragmentMismatchWarning,
    crc32_int, xor_into,
)

logger = logging.getLogger(__name__)

# Rough count of fragments needed per block when mixed parts are involved
FOUNTAIN_OVERHEAD = 1.75


# ═══════════════════════════════════════════════════════════════
# BLOCK-LEVEL DECODER
# ═══════════════════════════════════════════════════════════════

class FountainDecoder:
    """
    Usage:
        decoder = FountainDecoder()
        for part in parts:
            decoder.receive_part(part)
            if decoder.is_complete:
                break
        message = decoder.result
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.expected_block_count: Optional[int] = None
        self.expected_message_len: Optional[int] = None
        self.expected_checksum: Optional[int] = None
        self.expected_fragment_len: Optional[int] = None

        self.simple_parts: Dict[int, bytes] = {}
        self.mixed_parts: Dict[FrozenSet[int], bytes] = {}
        self.seen: Set[int] = set()
        self._queue: Deque[Tuple[FrozenSet[int], bytes]] = deque()

        self.result: Optional[bytes] = None
        self.failed = False
        self.processed_count = 0
        self.duplicate_count = 0
        self.last_indexes: Optional[FrozenSet[int]] = None

    # ─── State ────────────────────────────────────────────────

    @property
    def started(self) -> bool:
        return self.expected_block_count is not None

    @property
    def is_complete(self) -> bool:
        return self.result is not None or self.failed

    @property
    def is_success(self) -> bool:
        return self.result is not None

    @property
    def resolved_count(self) -> int:
        return len(self.simple_parts)

    def progress(self) -> float:
        if self.is_success:
            return 1.0
        if not self.started:
            return 0.0
        return self.resolved_count / self.expected_block_count

    def estimated_percent_complete(self) -> float:
        if self.is_success:
            return 1.0
        if not self.started:
            return 0.0
        estimated_parts = self.expected_block_count * FOUNTAIN_OVERHEAD
        return min(0.99, self.processed_count / estimated_parts)

    def seen_blocks(self) -> List[int]:
        return [1 if i in self.seen else 0 for i in range(self.expected_block_count or 0)]

    def resolved_blocks(self) -> List[int]:
        return [1 if i in self.simple_parts else 0
                for i in range(self.expected_block_count or 0)]

    # ─── Receiving ────────────────────────────────────────────

    def receive_part(self, part: FragmentPart) -> bool:
        """
        Feed one part. Returns False if the decoder was already complete.
        Raises InvalidFragmentError for a self-inconsistent header, and
        FragmentMismatchError when the part belongs to a different message.
        Either way all state is left untouched.
        """
        if self.is_complete:
            return False
        part.check_geometry()
        self.validate_part(part)

        if not self.started:
            self.expected_block_count = part.seq_len
            self.expected_message_len = part.message_len
            self.expected_checksum = part.checksum
            self.expected_fragment_len = len(part.data)

        indexes = choose_fragments(part.seq_num, part.seq_len, part.checksum)
        self.last_indexes = indexes
        self.seen.update(indexes)
        self._queue.append((indexes, bytes(part.data)))

        while not self.is_complete and self._queue:
            self._process(*self._queue.popleft())

        self.processed_count += 1
        return True

    def validate_part(self, part: FragmentPart):
        if not self.started:
            return
        mismatches = []
        if part.seq_len != self.expected_block_count:
            mismatches.append(f"block count {part.seq_len} != {self.expected_block_count}")
        if part.message_len != self.expected_message_len:
            mismatches.append(f"message length {part.message_len} != {self.expected_message_len}")
        if part.checksum != self.expected_checksum:
            mismatches.append(f"checksum {part.checksum:08x} != {self.expected_checksum:08x}")
        if len(part.data) != self.expected_fragment_len:
            mismatches.append(f"fragment length {len(part.data)} != {self.expected_fragment_len}")
        if mismatches:
            raise FragmentMismatchError(
                "Fragment belongs to a different message: " + ", ".join(mismatches),
                progress=self.progress(),
            )

    # ─── Peeling ──────────────────────────────────────────────

    def _process(self, indexes: FrozenSet[int], data: bytes):
        if len(indexes) == 1:
            self._process_simple(next(iter(indexes)), data)
        else:
            self._process_mixed(indexes, data)

    def _process_simple(self, index: int, data: bytes):
        if index in self.simple_parts:
            self.duplicate_count += 1
            return
        self.simple_parts[index] = data

        if len(self.simple_parts) == self.expected_block_count:
            self._finish()
        else:
            self._reduce_mixed_by(frozenset([index]), data)

    def _process_mixed(self, indexes: FrozenSet[int], data: bytes):
        if indexes in self.mixed_parts:
            self.duplicate_count += 1
            return

        reduced = bytearray(data)
        for i in indexes.intersection(self.simple_parts):
            xor_into(reduced, self.simple_parts[i])
        indexes = indexes.difference(self.simple_parts)
        for other, other_data in self.mixed_parts.items():
            if other <= indexes:
                indexes = indexes - other
                xor_into(reduced, other_data)

        if not indexes:
            # Nothing new in this part
            self.duplicate_count += 1
        elif len(indexes) == 1:
            self._queue.append((indexes, bytes(reduced)))
        else:
            self._reduce_mixed_by(indexes, bytes(reduced))
            self.mixed_parts[indexes] = bytes(reduced)

    def _reduce_mixed_by(self, indexes: FrozenSet[int], data: bytes):
        remaining = {}
        for other, other_data in self.mixed_parts.items():
            if indexes < other:
                other = other - indexes
                other_data = bytes(xor_into(bytearray(other_data), data))
                if len(other) == 1:
                    self._queue.append((other, other_data))
                    continue
            remaining[other] = other_data
        self.mixed_parts = remaining

    def _finish(self):
        message = b"".join(self.simple_parts[i] for i in range(self.expected_block_count))
        message = message[:self.expected_message_len]
        if crc32_int(message) == self.expected_checksum:
            self.result = message
        else:
            self.failed = True
        self.mixed_parts = {}
        self._queue.clear()


# ═══════════════════════════════════════════════════════════════
# UR-LEVEL DECODER
# ═══════════════════════════════════════════════════════════════

class MultiPartDecoder:
    """
    Reassembles a multi-part UR from its text fragments.

    Usage:
        decoder = MultiPartDecoder()
        for line in scanned_frames:
            decoder.receive_fragment(line)
            if decoder.is_complete():
                payload = decoder.assembled_payload()
    """

    def __init__(self):
        self.fountain = FountainDecoder()
        self.reset()

    def reset(self):
        self.fountain.reset()
        self.type_tag: Optional[str] = None
        self.single_result: Optional[Payload] = None
        self.received_count = 0
        self.rejected_count = 0
        self.last_warning: Optional[str] = None

    # ─── Contract ─────────────────────────────────────────────

    def receive_fragment(self, fragment_text: str) -> bool:
        """
        Feed one UR line. Returns True when the fragment was accepted.

        Malformed text raises a ParseError. Fragments from another message
        are rejected with a FragmentMismatchWarning and change nothing.
        """
        if self.is_complete():
            logger.debug("Decoder already complete; ignoring fragment")
            return False

        ur = ur_string.parse(fragment_text)
        self.received_count += 1

        if self.type_tag is not None and ur.type_tag != self.type_tag:
            return self._reject(
                f"Fragment type ur:{ur.type_tag} does not match ur:{self.type_tag} "
                f"already being assembled"
            )

        if not ur.is_fragment:
            if self.fountain.started:
                return self._reject("Single-part UR received during multi-part assembly")
            self.single_result = Payload(cbor=ur.decode_body(), type_tag=ur.type_tag)
            self.type_tag = ur.type_tag
            logger.info("Received complete single-part ur:%s", ur.type_tag)
            return True

        type_tag, part = ur_string.parse_part(fragment_text)
        try:
            accepted = self.fountain.receive_part(part)
        except FragmentMismatchError as e:
            return self._reject(str(e))

        self.type_tag = type_tag
        if self.fountain.is_success:
            logger.info(
                "Assembled ur:%s from %d fragments (%d blocks, %d duplicates)",
                type_tag, self.fountain.processed_count,
                self.fountain.expected_block_count, self.fountain.duplicate_count,
            )
        elif self.fountain.failed:
            logger.warning("All blocks of ur:%s resolved but the message checksum failed",
                           type_tag)
        return accepted

    def is_complete(self) -> bool:
        return self.single_result is not None or self.fountain.is_complete

    def progress(self) -> float:
        if self.single_result is not None:
            return 1.0
        return self.fountain.progress()

    def estimated_percent_complete(self) -> float:
        if self.single_result is not None:
            return 1.0
        return self.fountain.estimated_percent_complete()

    def assembled_payload(self) -> Payload:
        if self.single_result is not None:
            return self.single_result
        if self.fountain.failed:
            raise ChecksumMismatchError(
                "Multi-part UR reassembled but failed its checksum", progress=1.0)
        if not self.fountain.is_success:
            progress = self.progress()
            raise IncompleteAssemblyError(
                f"Incomplete multi-part UR. Progress: {progress * 100:.1f}%",
                progress=progress,
            )
        return Payload(cbor=self.fountain.result, type_tag=self.type_tag)

    # ─── Inspection ───────────────────────────────────────────

    @property
    def expected_block_count(self) -> int:
        if self.single_result is not None:
            return 1
        return self.fountain.expected_block_count or 0

    @property
    def processed_count(self) -> int:
        return self.fountain.processed_count

    @property
    def duplicate_count(self) -> int:
        return self.fountain.duplicate_count

    def seen_blocks(self) -> List[int]:
        if self.single_result is not None:
            return [1]
        return self.fountain.seen_blocks()

    def resolved_blocks(self) -> List[int]:
        if self.single_result is not None:
            return [1]
        return self.fountain.resolved_blocks()

    def _reject(self, message: str) -> bool:
        self.rejected_count += 1
        self.last_warning = message
        logger.warning(message)
        warnings.warn(FragmentMismatchWarning(message), stacklevel=3)
        return False


# ═══════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def assemble_fragments(lines: Iterable[str],
                       decoder: Optional[MultiPartDecoder] = None) -> Payload:
    """Feed a batch of UR lines and return the assembled Payload."""
    decoder = decoder or MultiPartDecoder()
    for line in lines:
        line = line.strip()
        if not line:
            continue
        if not line.lower().startswith("ur:"):
            raise MalformedUrError(f"Invalid UR part: {line}")
        decoder.receive_fragment(line)
        if decoder.is_complete():
            break
    return decoder.assembled_payload()
