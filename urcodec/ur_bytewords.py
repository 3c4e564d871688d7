"""
Bytewords — BCR-2020-012 word encoding
=======================================

Maps every byte to one of 256 four-letter words. A CRC-32 of the payload
(big-endian) is appended before encoding, so every decoded string is
self-checking.

Three styles:
  standard : "able acid also lava"   (space separated)
  uri      : "able-acid-also-lava"   (hyphen separated)
  minimal  : "aeadaola"              (first + last letter, no separator)

Word lookup is by first and last letter, which is unique across the table;
full words must additionally match exactly.
"""

from typing import Dict, List, Union

from urcodec.ur_types import (
    BytewordsStyle, InvalidBytewordsError, crc32_bytes,
)

# ═══════════════════════════════════════════════════════════════
# WORD TABLE
# ═══════════════════════════════════════════════════════════════

WORDS = (
    "able acid also apex aqua arch atom aunt "
    "away axis back bald barn belt beta bias "
    "blue body brag brew bulb buzz calm cash "
    "cats chef city claw code cola cook cost "
    "crux curl cusp cyan dark data days deli "
    "dice diet door down draw drop drum dull "
    "duty each easy echo edge epic even exam "
    "exit eyes fact fair fern figs film fish "
    "fizz flap flew flux foxy free frog fuel "
    "fund gala game gear gems gift girl glow "
    "good gray grim guru gush gyro half hang "
    "hard hawk heat help high hill holy hope "
    "horn huts iced idea idle inch inky into "
    "iris iron item jade jazz join jolt jowl "
    "judo jugs jump junk jury keep keno kept "
    "keys kick kiln king kite kiwi knob lamb "
    "lava lazy leaf legs liar limp lion list "
    "logo loud love luau luck lung main many "
    "math maze memo menu meow mild mint miss "
    "monk nail navy need news next noon note "
    "numb obey oboe omit onyx open oval owls "
    "paid part peck play plus poem pool pose "
    "puff puma purr quad quiz race ramp real "
    "redo rich road rock roof ruby ruin runs "
    "rust safe saga scar sets silk skew slot "
    "soap solo song stub surf swan taco task "
    "taxi tent tied time tiny toil tomb toys "
    "trip tuna twin ugly undo unit urge user "
    "vast very veto vial vibe view visa void "
    "vows wall wand warm wasp wave waxy webs "
    "what when whiz wolf work yank yawn yell "
    "yoga yurt zaps zero zest zinc zone zoom "
).split()

assert len(WORDS) == 256

# "ae" -> 0 ("able"), ...
_MINIMAL_INDEX: Dict[str, int] = {w[0] + w[3]: i for i, w in enumerate(WORDS)}

CHECKSUM_LEN = 4

_SEPARATORS = {
    BytewordsStyle.STANDARD: " ",
    BytewordsStyle.URI: "-",
    BytewordsStyle.MINIMAL: "",
}


# ═══════════════════════════════════════════════════════════════
# ENCODE / DECODE
# ═══════════════════════════════════════════════════════════════

def encode(data: bytes, style: Union[BytewordsStyle, str] = BytewordsStyle.MINIMAL) -> str:
    """Encode bytes (plus their CRC-32) as bytewords in the given style."""
    style = BytewordsStyle.coerce(style)
    body = bytes(data) + crc32_bytes(data)
    if style is BytewordsStyle.MINIMAL:
        words = [WORDS[b][0] + WORDS[b][3] for b in body]
    else:
        words = [WORDS[b] for b in body]
    return _SEPARATORS[style].join(words)


def decode(text: str, style: Union[BytewordsStyle, str] = BytewordsStyle.MINIMAL) -> bytes:
    """
    Decode bytewords back to the original bytes.

    Raises InvalidBytewordsError on unknown words, short input, or a
    checksum mismatch.
    """
    style = BytewordsStyle.coerce(style)
    text = (text or "").strip().lower()
    if not text:
        raise InvalidBytewordsError("Invalid bytewords: input is empty")

    if style is BytewordsStyle.MINIMAL:
        tokens = _split_minimal(text)
    elif style is BytewordsStyle.URI:
        tokens = text.split("-")
    else:
        tokens = text.split()

    body = bytearray()
    for token in tokens:
        body.append(_decode_word(token, style))

    if len(body) < CHECKSUM_LEN + 1:
        raise InvalidBytewordsError("Invalid bytewords: too short to carry a checksum")

    data, checksum = bytes(body[:-CHECKSUM_LEN]), bytes(body[-CHECKSUM_LEN:])
    if crc32_bytes(data) != checksum:
        raise InvalidBytewordsError("Invalid bytewords: checksum mismatch")
    return data


def _split_minimal(text: str) -> List[str]:
    if len(text) % 2:
        raise InvalidBytewordsError("Invalid bytewords: minimal form needs an even length")
    return [text[i:i + 2] for i in range(0, len(text), 2)]


def _decode_word(token: str, style: BytewordsStyle) -> int:
    expected_len = 2 if style is BytewordsStyle.MINIMAL else 4
    if len(token) != expected_len:
        raise InvalidBytewordsError(f"Invalid byteword: {token!r}")
    index = _MINIMAL_INDEX.get(token[0] + token[-1])
    if index is None or (expected_len == 4 and WORDS[index] != token):
        raise InvalidBytewordsError(f"Invalid byteword: {token!r}")
    return index
