"""Command-line tool for converting raw record files to and from JSON.

Usage:
    typed-records describe schema.tr                     # list record types
    typed-records describe schema.tr Person              # show one layout
    typed-records encode schema.tr Person person.bin     # record -> JSON
    typed-records decode schema.tr Person person.json -o person.bin
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from typed_records.codec import Codec, dumps
from typed_records.exceptions import TypedRecordsError
from typed_records.options import BYTE_ORDERS, CodecOptions
from typed_records.parsing import SchemaParser
from typed_records.registry import TypeRegistry
from typed_records.types import FieldDescriptor, FieldFailure, TypeCode


def load_schema(path: Path, options: CodecOptions) -> TypeRegistry:
    """Parse a schema file into a frozen registry."""
    registry = SchemaParser(options).parse(path.read_text())
    registry.freeze()
    return registry


def describe_field(field: FieldDescriptor) -> str:
    """Format one descriptor as a table row."""
    if field.kind is TypeCode.STRUCT:
        detail = field.nested_type or ""
    elif field.kind is TypeCode.ARRAY:
        element = field.nested_type or field.element_kind.value
        detail = f"{element}[{field.element_count}]" if field.element_count else f"{element}[]"
    else:
        detail = ""
    return f"  {field.name:<24} {field.kind.value:<10} {field.offset:>6} {field.size:>6}  {detail}"


def print_type(registry: TypeRegistry, type_id: str) -> None:
    """Print the layout of one record type."""
    fields = registry.get_or_raise(type_id)
    print(f"{type_id} ({registry.size_of(type_id)} bytes)")
    print(f"  {'field':<24} {'kind':<10} {'offset':>6} {'size':>6}")
    for field in fields:
        print(describe_field(field))


def print_failures(failures: list[FieldFailure]) -> None:
    """Report degraded fields on stderr."""
    for failure in failures:
        print(f"Warning: {failure.error}", file=sys.stderr)


def run_describe(args: argparse.Namespace, options: CodecOptions) -> int:
    registry = load_schema(args.schema, options)
    if args.type is None:
        for type_id in registry.list_types():
            print(f"{type_id} ({registry.size_of(type_id)} bytes)")
        return 0
    print_type(registry, args.type)
    return 0


def run_encode(args: argparse.Namespace, options: CodecOptions) -> int:
    codec = Codec(load_schema(args.schema, options), options)
    data = args.record.read_bytes()
    expected = codec.registry.size_of(args.type)
    if expected is not None and len(data) < expected:
        print(
            f"Error: {args.record} holds {len(data)} bytes, '{args.type}' needs {expected}",
            file=sys.stderr,
        )
        return 1

    report = codec.encode_report(args.type, data)
    print_failures(report.failures)
    print(dumps(report.value, indent=args.indent))
    return 0


def run_decode(args: argparse.Namespace, options: CodecOptions) -> int:
    codec = Codec(load_schema(args.schema, options), options)
    if args.base is not None:
        record = bytearray(args.base.read_bytes())
    else:
        record = codec.new_record(args.type)

    failures = codec.decode_from_text(args.type, args.json_file.read_text(), record)
    print_failures(failures)
    args.output.write_bytes(bytes(record))
    print(f"Wrote {args.output}", file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Convert fixed-layout binary records to and from JSON"
    )
    parser.add_argument(
        "--byte-order",
        choices=sorted(BYTE_ORDERS),
        default="native",
        help="Byte order of record files (default: native)",
    )
    parser.add_argument(
        "--keep-pointers",
        action="store_true",
        help="Leave pointer fields untouched when decoding",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log skipped and failed fields",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    describe = commands.add_parser("describe", help="Show record layouts")
    describe.add_argument("schema", type=Path, help="Schema file")
    describe.add_argument("type", nargs="?", help="Record type to show (omit to list types)")

    encode = commands.add_parser("encode", help="Convert a record file to JSON")
    encode.add_argument("schema", type=Path, help="Schema file")
    encode.add_argument("type", help="Record type")
    encode.add_argument("record", type=Path, help="Raw record file")
    encode.add_argument("--indent", type=int, default=None, help="Indent JSON output")

    decode = commands.add_parser("decode", help="Convert JSON to a record file")
    decode.add_argument("schema", type=Path, help="Schema file")
    decode.add_argument("type", help="Record type")
    decode.add_argument("json_file", type=Path, help="JSON input file")
    decode.add_argument("-o", "--output", type=Path, required=True, help="Record file to write")
    decode.add_argument(
        "--base",
        type=Path,
        default=None,
        help="Record file to start from (default: a zeroed record)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )
    options = CodecOptions(
        byte_order=BYTE_ORDERS[args.byte_order],
        clear_pointers_on_decode=not args.keep_pointers,
    )

    handlers = {
        "describe": run_describe,
        "encode": run_encode,
        "decode": run_decode,
    }
    try:
        return handlers[args.command](args, options)
    except (TypedRecordsError, SyntaxError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
