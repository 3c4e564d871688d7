"""
Conversion Orchestrator — the five-representation pipeline
===========================================================

    multiur ──assemble──> ur ──body──> bytewords ──> hex ──> decoded
        ^                  ^                                   │
        └────generate──────┴──────────resolve/compose──────────┘

Every decoded presentation shares the DECODED stage; only decoded-json and
diagnostic text can be parsed back. A conversion:

  1. parses the input per source stage into a Payload (multiur, ur),
     raw bytes (bytewords, hex, diagnostic) or a JSON value (decoded-json)
  2. derives the CBOR bytes
  3. produces the target representation

Converter raises; ConversionSession wraps it with detection, the result
cache and a scanning decoder, and returns a ConversionResult every time.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from cbor_diag import diag2cbor

from urcodec import ur_bytewords as bytewords
from urcodec import ur_string, ur_views
from urcodec.ur_cache import CacheKey, ConversionCache
from urcodec.ur_detect import detect_format
from urcodec.ur_fountain_decoder import MultiPartDecoder, assemble_fragments
from urcodec.ur_fountain_encoder import FountainParams, generate
from urcodec.ur_resolver import TypeResolver
from urcodec.ur_types import (
    DEFAULT_CACHE_CAPACITY, FALLBACK_TYPE,
    BytewordsStyle, Format, Stage, Payload, DECODED_SOURCE_FORMATS,
    UrCodecError, EmptyInputError, FormatDetectionError, InvalidHexError,
    InvalidStructuredValueError, UnsupportedSourceError, UnsupportedTargetError,
    ResolutionError, coerce_format, validate_type_tag,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# REQUEST / RESULT
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ConvertOptions:
    type_override: str = ""
    input_style: BytewordsStyle = BytewordsStyle.MINIMAL
    output_style: BytewordsStyle = BytewordsStyle.MINIMAL
    fountain: FountainParams = field(default_factory=FountainParams)

    def __post_init__(self):
        object.__setattr__(self, "type_override", (self.type_override or "").strip())
        object.__setattr__(self, "input_style", BytewordsStyle.coerce(self.input_style))
        object.__setattr__(self, "output_style", BytewordsStyle.coerce(self.output_style))


@dataclass
class ConversionResult:
    output: str = ""
    ok: bool = True
    error: Optional[UrCodecError] = None
    source_format: Optional[Format] = None
    target_format: Optional[Format] = None
    type_tag: Optional[str] = None
    registry_resolved: bool = False
    type_auto_detected: bool = False
    cache_hit: bool = False
    value: Any = field(default=None, compare=False, repr=False)

    @property
    def error_message(self) -> str:
        return str(self.error) if self.error is not None else ""


@dataclass(frozen=True)
class ScanStatus:
    """Snapshot of the session decoder after one scanned fragment."""
    accepted: bool
    complete: bool
    progress: float
    estimated_progress: float
    type_tag: Optional[str]
    expected_block_count: int
    resolved_blocks: list
    warning: Optional[str] = None


# ═══════════════════════════════════════════════════════════════
# CONVERTER
# ═══════════════════════════════════════════════════════════════

class Converter:
    """
    Stateless pipeline runner.

    Usage:
        converter = Converter(TagRegistryResolver())
        result = converter.convert("48656c6c6f", Format.HEX, Format.SINGLE)
        result.output   # 'ur:unknown-tag/fdihjzjzjlylttldlf'
    """

    def __init__(self, resolver: Optional[TypeResolver] = None):
        # A bare TypeResolver resolves nothing: fallback tags only
        self.resolver = resolver or TypeResolver()

    def convert(self, raw_input: str, source, target,
                options: Optional[ConvertOptions] = None) -> ConversionResult:
        options = options or ConvertOptions()
        source = coerce_format(source, UnsupportedSourceError)
        target = coerce_format(target, UnsupportedTargetError)

        if source.is_decoded and source not in DECODED_SOURCE_FORMATS:
            raise UnsupportedSourceError(
                f"Decoded view {source.value} cannot be a source for re-encoding; "
                f"switch the input format to {Format.DECODED_JSON.value} or {Format.DIAGNOSTIC.value}"
            )
        if options.type_override:
            validate_type_tag(options.type_override)
        if target.stage is Stage.MULTI_PART:
            options.fountain.validate()

        logger.debug("Converting %s -> %s (%d chars)", source.value, target.value,
                     len(raw_input))

        payload, data = self._parse(raw_input, source, options)
        if data is None:
            data = payload.cbor

        result = ConversionResult(source_format=source, target_format=target)
        if payload is not None:
            result.type_tag = payload.type_tag
        self._produce(result, payload, data, target, options)
        return result

    # ─── Step 1: parse ────────────────────────────────────────

    def _parse(self, raw_input: str, source: Format, options: ConvertOptions):
        """Returns (payload, None) for UR input, else (None, cbor bytes)."""
        stage = source.stage
        text = raw_input.strip()

        if stage is Stage.MULTI_PART:
            payload = assemble_fragments(text.splitlines())
            logger.debug("Assembled multi-part ur:%s (%d bytes)",
                         payload.type_tag, len(payload.cbor))
            return payload, None

        if stage is Stage.SINGLE:
            return ur_string.payload_from_ur(text), None

        if stage is Stage.BYTEWORDS:
            return None, bytewords.decode(text, options.input_style)

        if stage is Stage.HEX:
            return None, parse_hex(text)

        if source is Format.DIAGNOSTIC:
            return None, parse_diagnostic(text)

        try:
            value = json.loads(raw_input)
        except ValueError as e:
            raise InvalidStructuredValueError(f"Invalid JSON: {e}")
        type_tag = options.type_override or FALLBACK_TYPE
        return None, self.resolver.encode(value, type_tag)

    # ─── Step 2: produce ──────────────────────────────────────

    def _produce(self, result: ConversionResult, payload: Optional[Payload],
                 data: bytes, target: Format, options: ConvertOptions):
        stage = target.stage

        if stage is Stage.DECODED:
            result.output, result.value = ur_views.render(
                data, target, self.resolver, result.type_tag)
            return

        if stage is Stage.HEX:
            result.output = data.hex()
            return

        if stage is Stage.BYTEWORDS:
            result.output = bytewords.encode(data, options.output_style)
            return

        if payload is None:
            payload = self._compose_payload(result, data, options)
        else:
            # A genuine UR keeps its own type; the override never applies
            result.registry_resolved = True

        if stage is Stage.SINGLE:
            result.output = ur_string.payload_to_ur(payload)
            return

        sequence = generate(payload, options.fountain)
        if sequence.is_unbounded:
            parts = sequence.take(sequence.pure_fragment_count)
        else:
            parts = sequence.parts
        logger.debug("Generated %d fragments for ur:%s", len(parts), payload.type_tag)
        result.output = "\n".join(parts)

    def _compose_payload(self, result: ConversionResult, data: bytes,
                         options: ConvertOptions) -> Payload:
        try:
            resolved = self.resolver.decode(data)
        except ResolutionError as e:
            type_tag = options.type_override or FALLBACK_TYPE
            logger.debug("No registered type (%s); using ur:%s", e, type_tag)
            result.type_tag = type_tag
            return Payload(cbor=data, type_tag=type_tag)

        body = self.resolver.encode(resolved.value, resolved.type_tag)
        result.type_tag = resolved.type_tag
        result.registry_resolved = True
        result.type_auto_detected = True
        return Payload(cbor=body, type_tag=resolved.type_tag, value=resolved.value)


def parse_hex(text: str) -> bytes:
    if not text or len(text) % 2 != 0:
        raise InvalidHexError("Invalid hex input: expected an even number of hex digits")
    try:
        return bytes.fromhex(text)
    except ValueError:
        raise InvalidHexError("Invalid hex input: non-hex characters")


def parse_diagnostic(text: str) -> bytes:
    try:
        return bytes(diag2cbor(text))
    except ValueError as e:
        raise InvalidStructuredValueError(f"Invalid diagnostic notation: {e}")


# ═══════════════════════════════════════════════════════════════
# SESSION
# ═══════════════════════════════════════════════════════════════

class ConversionSession:
    """
    One user session: a converter, its result cache and a scanning decoder.

    convert() never raises for conversion failures; they come back as
    ConversionResult(ok=False, error=...). Failures are cached as well, so
    repeating a bad request is as cheap as repeating a good one.
    """

    def __init__(self, resolver: Optional[TypeResolver] = None,
                 cache_capacity: int = DEFAULT_CACHE_CAPACITY):
        self.converter = Converter(resolver)
        self.cache = ConversionCache(cache_capacity)
        self.decoder = MultiPartDecoder()

    def convert(self, raw_input: str, target, source=None,
                options: Optional[ConvertOptions] = None) -> ConversionResult:
        options = options or ConvertOptions()
        try:
            target = coerce_format(target, UnsupportedTargetError)
            if not raw_input or not raw_input.strip():
                raise EmptyInputError("Input is empty")
            if source is None:
                source = detect_format(raw_input)
                if source is None:
                    raise FormatDetectionError(
                        "Could not detect the input format; select it manually")
                logger.debug("Detected input format %s", source.value)
            source = coerce_format(source, UnsupportedSourceError)
        except UrCodecError as e:
            return ConversionResult(ok=False, error=e,
                                    target_format=target if isinstance(target, Format) else None)

        key = CacheKey(raw_input=raw_input, source_format=source.value,
                       target_format=target.value,
                       type_override=options.type_override,
                       input_style=options.input_style.value,
                       output_style=options.output_style.value,
                       fountain=options.fountain if target.stage is Stage.MULTI_PART else None)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s -> %s", source.value, target.value)
            return replace(cached, cache_hit=True)

        try:
            result = self.converter.convert(raw_input, source, target, options)
        except UrCodecError as e:
            logger.debug("Conversion %s -> %s failed: %s", source.value, target.value, e)
            result = ConversionResult(ok=False, error=e, source_format=source,
                                      target_format=target)
        self.cache.put(key, result)
        return replace(result)

    # ─── Scanning ─────────────────────────────────────────────

    def scan(self, fragment_text: str) -> ScanStatus:
        """Feed one scanned frame to the session decoder."""
        warning_before = self.decoder.rejected_count
        accepted = self.decoder.receive_fragment(fragment_text)
        rejected = self.decoder.rejected_count != warning_before
        return ScanStatus(
            accepted=accepted,
            complete=self.decoder.is_complete(),
            progress=self.decoder.progress(),
            estimated_progress=self.decoder.estimated_percent_complete(),
            type_tag=self.decoder.type_tag,
            expected_block_count=self.decoder.expected_block_count,
            resolved_blocks=self.decoder.resolved_blocks(),
            warning=self.decoder.last_warning if rejected else None,
        )

    def scanned_payload(self) -> Payload:
        return self.decoder.assembled_payload()

    def reset_scan(self):
        self.decoder.reset()
