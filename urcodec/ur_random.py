"""
Fountain Randomness — deterministic block-subset selection
===========================================================

Encoder and decoder must agree, bit for bit, on which original blocks are
XOR-ed into every mixed fragment. Both sides derive that choice from the
fragment's sequence number and the message checksum only:

  1. seed   = SHA-256( be32(seq_num) || be32(checksum) )
  2. rng    = Xoshiro256** with state words = seed as 4 big-endian uint64
  3. degree = Vose alias sample over weights 1/1, 1/2, ... 1/seq_len, plus 1
  4. set    = first `degree` items of a Fisher-Yates-style shuffle of 0..n-1

Fragments with seq_num <= seq_len are "pure": exactly block seq_num - 1.
"""

import math
import struct
import hashlib
from typing import Callable, FrozenSet, List, Sequence

MAX_UINT64 = 0xFFFFFFFFFFFFFFFF


def _rotl(x: int, k: int) -> int:
    return ((x << k) | (x >> (64 - k))) & MAX_UINT64


# ═══════════════════════════════════════════════════════════════
# XOSHIRO256**
# ═══════════════════════════════════════════════════════════════

class Xoshiro256:
    """xoshiro256** 1.0 with SHA-256 seeding."""

    def __init__(self, state: Sequence[int]):
        if len(state) != 4:
            raise ValueError("Xoshiro256 needs 4 state words")
        self.s = [v & MAX_UINT64 for v in state]

    @classmethod
    def from_bytes(cls, seed: bytes) -> "Xoshiro256":
        digest = hashlib.sha256(seed).digest()
        return cls(struct.unpack(">4Q", digest))

    def next(self) -> int:
        s = self.s
        result = (_rotl((s[1] * 5) & MAX_UINT64, 7) * 9) & MAX_UINT64
        t = (s[1] << 17) & MAX_UINT64
        s[2] ^= s[0]
        s[3] ^= s[1]
        s[1] ^= s[2]
        s[0] ^= s[3]
        s[2] ^= t
        s[3] = _rotl(s[3], 45)
        return result

    def next_double(self) -> float:
        return self.next() / (float(MAX_UINT64) + 1)

    def next_int(self, low: int, high: int) -> int:
        """Uniform integer in [low, high]."""
        return int(math.floor(self.next_double() * (high - low + 1) + low)) & MAX_UINT64


# ═══════════════════════════════════════════════════════════════
# WEIGHTED SAMPLING (Vose alias method)
# ═══════════════════════════════════════════════════════════════

class RandomSampler:
    """
    Walker/Vose alias table. Index lists are built in reverse order, which
    is what keeps the table identical to other UR implementations.
    """

    def __init__(self, weights: Sequence[float]):
        if any(w < 0 for w in weights):
            raise ValueError("Sampler weights must be non-negative")
        total = sum(weights)
        if total <= 0:
            raise ValueError("Sampler weights must sum to a positive value")

        n = len(weights)
        scaled = [(w * n) / total for w in weights]
        small: List[int] = []
        large: List[int] = []
        for i in reversed(range(n)):
            (small if scaled[i] < 1 else large).append(i)

        probs = [0.0] * n
        aliases = [0] * n
        while small and large:
            a = small.pop()
            g = large.pop()
            probs[a] = scaled[a]
            aliases[a] = g
            scaled[g] += scaled[a] - 1
            (small if scaled[g] < 1 else large).append(g)
        while large:
            probs[large.pop()] = 1.0
        # Only reachable through floating point drift
        while small:
            probs[small.pop()] = 1.0

        self.probs = probs
        self.aliases = aliases

    def next(self, random_double: Callable[[], float]) -> int:
        r1 = random_double()
        r2 = random_double()
        i = int(len(self.probs) * r1)
        return i if r2 < self.probs[i] else self.aliases[i]


# ═══════════════════════════════════════════════════════════════
# FRAGMENT CHOICE
# ═══════════════════════════════════════════════════════════════

def choose_degree(seq_len: int, rng: Xoshiro256) -> int:
    sampler = RandomSampler([1.0 / i for i in range(1, seq_len + 1)])
    return sampler.next(rng.next_double) + 1


def shuffled(items: List[int], rng: Xoshiro256) -> List[int]:
    remaining = list(items)
    result = []
    while remaining:
        index = rng.next_int(0, len(remaining) - 1)
        result.append(remaining.pop(index))
    return result


def choose_fragments(seq_num: int, seq_len: int, checksum: int) -> FrozenSet[int]:
    """Block indexes (0-based) combined into fragment `seq_num`."""
    if seq_num <= seq_len:
        return frozenset([seq_num - 1])
    seed = struct.pack(">II", seq_num, checksum)
    rng = Xoshiro256.from_bytes(seed)
    degree = choose_degree(seq_len, rng)
    return frozenset(shuffled(list(range(seq_len)), rng)[:degree])
