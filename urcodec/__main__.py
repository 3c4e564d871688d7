"""CLI entry point for running as `python -m urcodec`.

Usage:
    python -m urcodec detect "ur:seed/..."
    python -m urcodec convert --to hex "ur:seed/..."
    python -m urcodec convert --from decoded-json --to ur --type my-thing '{"a": 1}'
    python -m urcodec split --max-fragment 30 --ratio 2 "ur:seed/..."
    python -m urcodec join < fragments.txt

INPUT defaults to stdin when omitted or "-".
"""

import sys
import logging
import argparse

from urcodec.ur_converter import Converter, ConvertOptions
from urcodec.ur_detect import detect_format
from urcodec.ur_fountain_decoder import assemble_fragments
from urcodec.ur_fountain_encoder import FountainParams, generate
from urcodec.ur_resolver import TagRegistryResolver
from urcodec.ur_string import payload_from_ur, payload_to_ur
from urcodec.ur_types import (
    Format, BytewordsStyle, ConversionError, FormatDetectionError, EmptyInputError,
    DEFAULT_MAX_FRAGMENT_LENGTH, DEFAULT_MIN_FRAGMENT_LENGTH,
    DEFAULT_FIRST_SEQ_NUM, DEFAULT_REPEAT_AFTER_RATIO,
    sanitize_type_tag,
)

_FORMATS = [f.value for f in Format]
_STYLES = [s.value for s in BytewordsStyle]


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urcodec",
        description="Convert between multi-part UR, UR, bytewords, hex and decoded CBOR",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("detect", help="Print the detected input format")
    p.add_argument("input", nargs="?", default="-")

    p = sub.add_parser("convert", help="Convert input to another format")
    p.add_argument("input", nargs="?", default="-")
    p.add_argument("--from", dest="source", choices=_FORMATS,
                   help="Source format (auto-detected when omitted)")
    p.add_argument("--to", dest="target", choices=_FORMATS, required=True)
    p.add_argument("--type", dest="type_override", default="",
                   help="UR type used when the payload carries no registered tag "
                        "(\"My Type\" becomes my-type)")
    p.add_argument("--input-style", choices=_STYLES, default="minimal")
    p.add_argument("--output-style", choices=_STYLES, default="minimal")
    _add_fountain_args(p)

    p = sub.add_parser("split", help="Split a UR into multi-part fragments")
    p.add_argument("input", nargs="?", default="-")
    p.add_argument("--count", type=int, default=None,
                   help="Number of fragments to print (default: one cycle)")
    _add_fountain_args(p)

    p = sub.add_parser("join", help="Assemble multi-part fragments into one UR")
    p.add_argument("input", nargs="?", default="-")
    return parser


def _add_fountain_args(p: argparse.ArgumentParser):
    p.add_argument("--max-fragment", type=int, default=DEFAULT_MAX_FRAGMENT_LENGTH)
    p.add_argument("--min-fragment", type=int, default=DEFAULT_MIN_FRAGMENT_LENGTH)
    p.add_argument("--first-seq", type=int, default=DEFAULT_FIRST_SEQ_NUM)
    p.add_argument("--ratio", type=float, default=DEFAULT_REPEAT_AFTER_RATIO,
                   help="Cycle length as a multiple of the block count; 0 streams")


def _fountain_params(args) -> FountainParams:
    return FountainParams(max_fragment_length=args.max_fragment,
                          min_fragment_length=args.min_fragment,
                          first_seq_num=args.first_seq,
                          repeat_after_ratio=args.ratio)


def _read_input(value: str) -> str:
    text = sys.stdin.read() if value == "-" else value
    if not text.strip():
        raise EmptyInputError("Input is empty")
    return text


def run(args) -> int:
    if args.command == "detect":
        fmt = detect_format(_read_input(args.input))
        if fmt is None:
            raise FormatDetectionError("Could not detect the input format")
        print(fmt.value)

    elif args.command == "convert":
        text = _read_input(args.input)
        source = args.source or detect_format(text)
        if source is None:
            raise FormatDetectionError("Could not detect the input format; pass --from")
        options = ConvertOptions(type_override=sanitize_type_tag(args.type_override),
                                 input_style=args.input_style,
                                 output_style=args.output_style,
                                 fountain=_fountain_params(args))
        result = Converter(TagRegistryResolver()).convert(text, source, args.target, options)
        print(result.output)

    elif args.command == "split":
        sequence = generate(payload_from_ur(_read_input(args.input)), _fountain_params(args))
        if args.count is not None:
            parts = sequence.take(args.count)
        elif sequence.is_unbounded:
            parts = sequence.take(sequence.pure_fragment_count)
        else:
            parts = sequence.parts
        for part in parts:
            print(part)

    elif args.command == "join":
        print(payload_to_ur(assemble_fragments(_read_input(args.input).splitlines())))

    return 0


def main(argv=None):
    """Entry point for `python -m urcodec` and the `urcodec` script."""
    parser = create_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args)
    except ConversionError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
