"""
urcodec — Codec Primitives Test Suite
======================================

  1. Bytewords vectors in all three styles
  2. Bytewords rejection (unknown words, checksum, short input)
  3. UR string grammar (single-part, parts, case, malformed input)
  4. Type tag validation and sanitizing
  5. Fragment wire format
  6. Deterministic block selection
  7. Decoded presentations

Run: python test_codec.py
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import cbor2

from testkit import run_suite
from urcodec import ur_bytewords as bytewords
from urcodec import ur_string, ur_views
from urcodec.ur_random import Xoshiro256, RandomSampler, choose_fragments
from urcodec.ur_types import (
    BytewordsStyle, Format, Payload, FragmentPart,
    InvalidBytewordsError, MalformedUrError, InvalidTypeTagError,
    InvalidFragmentError, DecodeFailedError,
    sanitize_type_tag, is_valid_type_tag, crc32_int,
)

HELLO = b"Hello"


# ═══════════════════════════════════════════════════════════════
# BYTEWORDS
# ═══════════════════════════════════════════════════════════════

def test_bytewords_vectors(r):
    data = bytes([0, 1, 2, 128, 255])
    assert bytewords.encode(data, BytewordsStyle.STANDARD) == \
        "able acid also lava zoom jade need echo taxi"
    assert bytewords.encode(data, BytewordsStyle.URI) == \
        "able-acid-also-lava-zoom-jade-need-echo-taxi"
    assert bytewords.encode(data, BytewordsStyle.MINIMAL) == "aeadaolazmjendeoti"

    assert bytewords.encode(HELLO, "standard") == \
        "fund inch jazz jazz jowl yell tent loud leaf"
    assert bytewords.encode(HELLO) == "fdihjzjzjlylttldlf"


def test_bytewords_decode(r):
    data = bytes([0, 1, 2, 128, 255])
    assert bytewords.decode("able acid also lava zoom jade need echo taxi",
                            BytewordsStyle.STANDARD) == data
    assert bytewords.decode("able-acid-also-lava-zoom-jade-need-echo-taxi", "uri") == data
    assert bytewords.decode("AEADAOLAZMJENDEOTI") == data
    # Unknown style names fall back to minimal
    assert bytewords.decode("fdihjzjzjlylttldlf", "shouty") == HELLO


def test_bytewords_rejects(r):
    cases = [
        ("able acid also lava zoom jade need echo able", BytewordsStyle.STANDARD),  # checksum
        ("able acid also lava zoom jade need echo xxxx", BytewordsStyle.STANDARD),  # unknown word
        ("abxe acid also lava zoom jade need echo taxi", BytewordsStyle.STANDARD),  # near miss
        ("aeadaolazmjendeot", BytewordsStyle.MINIMAL),                             # odd length
        ("aeadao", BytewordsStyle.MINIMAL),                                        # too short
        ("", BytewordsStyle.MINIMAL),
    ]
    for text, style in cases:
        try:
            bytewords.decode(text, style)
            assert False, f"Should have rejected {text!r}"
        except InvalidBytewordsError:
            pass
    r.message = f"{len(cases)} malformed inputs rejected"


def test_word_table(r):
    assert len(bytewords.WORDS) == 256
    assert len(set(bytewords.WORDS)) == 256
    assert all(len(w) == 4 for w in bytewords.WORDS)
    minimal = {w[0] + w[3] for w in bytewords.WORDS}
    assert len(minimal) == 256, "first+last letters must be unique"


# ═══════════════════════════════════════════════════════════════
# UR STRINGS
# ═══════════════════════════════════════════════════════════════

def test_ur_single_part(r):
    payload = ur_string.payload_from_ur("ur:unknown-tag/fdihjzjzjlylttldlf")
    assert payload.type_tag == "unknown-tag"
    assert payload.cbor == HELLO
    assert ur_string.payload_to_ur(payload) == "ur:unknown-tag/fdihjzjzjlylttldlf"

    # QR alphanumeric mode delivers upper case
    upper = ur_string.payload_from_ur("UR:UNKNOWN-TAG/FDIHJZJZJLYLTTLDLF")
    assert upper == payload


def test_ur_parse_parts(r):
    ur = ur_string.parse("ur:seed/3-10/aeadaolazmjendeoti")
    assert ur.is_fragment
    assert (ur.seq_num, ur.seq_len) == (3, 10)

    legacy = ur_string.parse("ur:seed/3of10/aeadaolazmjendeoti")
    assert (legacy.seq_num, legacy.seq_len) == (3, 10)

    try:
        ur_string.payload_from_ur("ur:seed/3-10/aeadaolazmjendeoti")
        assert False, "A fragment is not a complete UR"
    except MalformedUrError as e:
        assert "assemble" in str(e)


def test_ur_malformed(r):
    bad = [
        "seed/fdihjzjzjlylttldlf",
        "ur:seed",
        "ur:seed/",
        "ur:Se_ed/fdihjzjzjlylttldlf",
        "ur:seed/1-2/3-4/fdihjzjzjlylttldlf",
        "ur:seed/x-2/fdihjzjzjlylttldlf",
        "ur:seed/0-2/fdihjzjzjlylttldlf",
    ]
    for text in bad:
        try:
            ur_string.parse(text)
            assert False, f"Should have rejected {text!r}"
        except MalformedUrError:
            pass

    # Well-formed grammar, broken body
    try:
        ur_string.payload_from_ur("ur:seed/fdihjzjzjlylttldld")
        assert False, "Checksum failure should surface as MalformedUrError"
    except MalformedUrError:
        pass


def test_type_tags(r):
    for good in ("seed", "crypto-hdkey", "a1-b2-c3", "unknown-tag"):
        assert is_valid_type_tag(good), good
    for bad in ("", "Seed", "-seed", "seed-", "se--ed", "se_ed", "se ed"):
        assert not is_valid_type_tag(bad), bad

    assert sanitize_type_tag("  My Type!! ") == "my-type"
    assert sanitize_type_tag("crypto__seed") == "cryptoseed"
    assert sanitize_type_tag("a -- b") == "a-b"
    assert sanitize_type_tag(None) == ""

    try:
        Payload(cbor=HELLO, type_tag="Not Valid")
        assert False, "Payload must validate its type tag"
    except InvalidTypeTagError:
        pass


# ═══════════════════════════════════════════════════════════════
# FRAGMENT WIRE FORMAT
# ═══════════════════════════════════════════════════════════════

def test_fragment_part_wire(r):
    part = FragmentPart(seq_num=7, seq_len=3, message_len=8,
                        checksum=crc32_int(b"x"), data=b"\x01\x02\x03")
    packed = part.pack()
    assert cbor2.loads(packed) == [7, 3, 8, crc32_int(b"x"), b"\x01\x02\x03"]
    assert FragmentPart.unpack(packed) == part

    bad = [
        cbor2.dumps("not an array"),
        cbor2.dumps([1, 2, 3]),
        cbor2.dumps([1, 2, 3, 4, "text"]),
        cbor2.dumps([-1, 2, 3, 4, b"\x00"]),
        cbor2.dumps([1, 2, 3, 2 ** 32, b"\x00"]),
        cbor2.dumps([1, 0, 3, 4, b"\x00"]),
        # Block count disagrees with message length and fragment size
        cbor2.dumps([300001, 300000, 5, 1, b"\x00" * 5]),
        cbor2.dumps([1, 2, 3, 4, b"\x00" * 5]),
        cbor2.dumps([1, 2, 30, 4, b"\x00" * 5]),
    ]
    for body in bad:
        try:
            FragmentPart.unpack(body)
            assert False, f"Should have rejected {body.hex()}"
        except InvalidFragmentError:
            pass


def test_part_header_must_match_path(r):
    part = FragmentPart(seq_num=1, seq_len=2, message_len=4,
                        checksum=crc32_int(b"abcd"), data=b"ab")
    text = ur_string.compose_part("seed", part)
    assert text.startswith("ur:seed/1-2/")
    type_tag, parsed = ur_string.parse_part(text)
    assert type_tag == "seed" and parsed == part

    forged = text.replace("/1-2/", "/2-2/")
    try:
        ur_string.parse_part(forged)
        assert False, "Path and header disagree"
    except MalformedUrError:
        pass


# ═══════════════════════════════════════════════════════════════
# BLOCK SELECTION
# ═══════════════════════════════════════════════════════════════

def test_xoshiro_deterministic(r):
    a = Xoshiro256.from_bytes(b"Wolf")
    b = Xoshiro256.from_bytes(b"Wolf")
    first = [a.next() for _ in range(20)]
    assert first == [b.next() for _ in range(20)]
    assert len(set(first)) == 20
    assert all(0 <= v < 2 ** 64 for v in first)

    c = Xoshiro256.from_bytes(b"Wolf")
    for _ in range(200):
        assert 0 <= c.next_double() < 1
        assert 1 <= c.next_int(1, 6) <= 6

    # Published BC-UR vector: SHA-256("Wolf") seed, next() % 100
    wolf = Xoshiro256.from_bytes(b"Wolf")
    assert [wolf.next() % 100 for _ in range(4)] == [42, 81, 85, 8]


def test_sampler(r):
    rng = Xoshiro256.from_bytes(b"sampler")
    sampler = RandomSampler([0.0, 1.0])
    assert all(sampler.next(rng.next_double) == 1 for _ in range(50))

    sampler = RandomSampler([1.0 / i for i in range(1, 11)])
    draws = [sampler.next(rng.next_double) for _ in range(500)]
    assert all(0 <= d < 10 for d in draws)
    assert draws.count(0) > draws.count(9), "weight 1/i favors low indexes"

    try:
        RandomSampler([0.0, 0.0])
        assert False, "All-zero weights must be rejected"
    except ValueError:
        pass


def test_choose_fragments(r):
    checksum = crc32_int(b"message")
    for seq in range(1, 6):
        assert choose_fragments(seq, 5, checksum) == frozenset([seq - 1])

    for seq in range(6, 60):
        chosen = choose_fragments(seq, 5, checksum)
        assert chosen, "Mixed fragments cover at least one block"
        assert chosen <= set(range(5))
        assert chosen == choose_fragments(seq, 5, checksum)

    degrees = {len(choose_fragments(seq, 20, checksum)) for seq in range(21, 300)}
    assert len(degrees) > 1
    r.message = f"degrees seen: {sorted(degrees)}"


# ═══════════════════════════════════════════════════════════════
# DECODED PRESENTATIONS
# ═══════════════════════════════════════════════════════════════

def test_views(r):
    data = cbor2.dumps({1: b"\x01", "a": [True, None]})

    text, value = ur_views.render(data, Format.DECODED_DIAGNOSTIC)
    assert text.startswith("{") and text.endswith("}")
    for token in ("1:", "h'01'", '"a"', "true", "null"):
        assert token in text, f"{token} missing from {text}"
    assert value == {1: b"\x01", "a": [True, None]}

    text, _ = ur_views.render(data, Format.DECODED_JSON)
    assert '"1": "01"' in text
    assert '"a": [' in text

    text, _ = ur_views.render(data, Format.DECODED_PYTHON, type_tag="thing")
    assert text.startswith("# ur:thing\n")

    text, _ = ur_views.render(cbor2.dumps([1, "a"]), Format.DECODED_COMMENTED)
    lines = text.splitlines()
    assert lines[0].startswith("82") and lines[0].endswith("# array(2)")
    assert "unsigned(1)" in lines[1]
    assert "text(1)" in lines[2]
    assert lines[3].endswith('# "a"')


def test_views_tags_and_floats(r):
    data = cbor2.dumps(cbor2.CBORTag(40300, {1: b"\xaa"}))
    text, _ = ur_views.render(data, Format.DECODED_DIAGNOSTIC)
    assert text.startswith("40300(")
    assert "h'aa'" in text

    commented = ur_views.comment(data)
    assert "tag(40300)" in commented
    assert "map(1)" in commented

    # f93c00 is half-precision 1.0
    assert "float(1.0)" in ur_views.comment(bytes.fromhex("f93c00"))
    assert "true" in ur_views.comment(bytes.fromhex("f5"))


def test_views_reject_garbage(r):
    for fmt in (Format.DECODED_JSON, Format.DECODED_COMMENTED):
        try:
            ur_views.render(HELLO, fmt)
            assert False, "Truncated CBOR must fail"
        except DecodeFailedError:
            pass


# ═══════════════════════════════════════════════════════════════
# RUNNER
# ═══════════════════════════════════════════════════════════════

def main():
    tests = [
        ("Bytewords Vectors", test_bytewords_vectors),
        ("Bytewords Decode", test_bytewords_decode),
        ("Bytewords Rejection", test_bytewords_rejects),
        ("Word Table", test_word_table),
        ("UR Single Part", test_ur_single_part),
        ("UR Part Markers", test_ur_parse_parts),
        ("UR Malformed Input", test_ur_malformed),
        ("Type Tags", test_type_tags),
        ("Fragment Wire Format", test_fragment_part_wire),
        ("Part Header vs Path", test_part_header_must_match_path),
        ("Xoshiro256** Determinism", test_xoshiro_deterministic),
        ("Alias Sampler", test_sampler),
        ("Fragment Choice", test_choose_fragments),
        ("Decoded Views", test_views),
        ("Decoded Views: Tags & Floats", test_views_tags_and_floats),
        ("Decoded Views: Garbage", test_views_reject_garbage),
    ]
    return run_suite("Codec Primitives", tests)


if __name__ == "__main__":
    sys.exit(main())
