"""
urcodec — Uniform Resource format converter & fountain codec
=============================================================

Moves one CBOR payload between five representations (multi-part UR,
single-part UR, bytewords, hex, decoded value) and reassembles payloads
split across looping fountain-coded fragments.

Rendering fragments into QR codes and scanning them back is left to the
caller; everything here is text in, text out.
"""

from urcodec.ur_types import (
    Format, Stage, BytewordsStyle, Payload, FragmentPart,
    UrCodecError, ConversionError, ParseError, ValidationError,
    AssemblyError, ResolutionError, IncompleteAssemblyError,
    FragmentMismatchWarning,
)
from urcodec.ur_detect import detect_format
from urcodec.ur_fountain_encoder import FountainParams, FragmentSequence, generate
from urcodec.ur_fountain_decoder import MultiPartDecoder, assemble_fragments
from urcodec.ur_resolver import TypeResolver, TagRegistryResolver, DecodedValue
from urcodec.ur_converter import (
    Converter, ConversionSession, ConvertOptions, ConversionResult,
)
from urcodec.ur_handoff import Handoff

__version__ = "1.0.0"
__all__ = [
    'Converter', 'ConversionSession', 'ConvertOptions', 'ConversionResult',
    'detect_format', 'generate', 'assemble_fragments',
    'FountainParams', 'FragmentSequence', 'MultiPartDecoder',
    'TypeResolver', 'TagRegistryResolver', 'DecodedValue', 'Handoff',
    'Format', 'Stage', 'BytewordsStyle', 'Payload', 'FragmentPart',
    'UrCodecError', 'ConversionError', 'ParseError', 'ValidationError',
    'AssemblyError', 'ResolutionError', 'IncompleteAssemblyError',
    'FragmentMismatchWarning',
]
