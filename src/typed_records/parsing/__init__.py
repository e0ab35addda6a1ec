"""Parsing module for the record schema DSL."""

from typed_records.parsing.schema_parser import SchemaParser, StructSpec

__all__ = [
    "SchemaParser",
    "StructSpec",
]
