"""Parser for the record schema DSL.

A schema is a sequence of C-like struct declarations::

    # comment
    struct Car {
        int32 id;
        float64 price;
        char brand[32];
    };

Structs are laid out and registered in declaration order, so a struct may
only use the structs declared before it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import ply.yacc as yacc

from typed_records.layout import FieldDeclaration, LayoutBuilder, RecordLayout
from typed_records.options import CodecOptions
from typed_records.parsing.schema_lexer import SchemaLexer
from typed_records.registry import TypeRegistry


@dataclass
class StructSpec:
    """Specification for a struct before layout."""

    name: str
    members: list[FieldDeclaration]


class SchemaParser:
    """Parser for record schema declarations."""

    tokens = SchemaLexer.tokens

    def __init__(self, options: CodecOptions | None = None) -> None:
        self.options = options or CodecOptions()
        self.lexer = SchemaLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self.layouts: dict[str, RecordLayout] = {}

    def p_schema(self, p: yacc.YaccProduction) -> None:
        """schema : definition_list
                  | empty"""
        p[0] = p[1] or []

    def p_definition_list_single(self, p: yacc.YaccProduction) -> None:
        """definition_list : definition"""
        p[0] = [p[1]]

    def p_definition_list_multiple(self, p: yacc.YaccProduction) -> None:
        """definition_list : definition_list definition"""
        p[0] = p[1] + [p[2]]

    def p_definition(self, p: yacc.YaccProduction) -> None:
        """definition : STRUCT IDENTIFIER LBRACE member_list RBRACE opt_semi"""
        p[0] = StructSpec(name=p[2], members=p[4])

    def p_definition_empty(self, p: yacc.YaccProduction) -> None:
        """definition : STRUCT IDENTIFIER LBRACE RBRACE opt_semi"""
        p[0] = StructSpec(name=p[2], members=[])

    def p_opt_semi(self, p: yacc.YaccProduction) -> None:
        """opt_semi : SEMI
                    | empty"""

    def p_member_list_single(self, p: yacc.YaccProduction) -> None:
        """member_list : member"""
        p[0] = [p[1]]

    def p_member_list_multiple(self, p: yacc.YaccProduction) -> None:
        """member_list : member_list member"""
        p[0] = p[1] + [p[2]]

    def p_member(self, p: yacc.YaccProduction) -> None:
        """member : IDENTIFIER IDENTIFIER SEMI"""
        p[0] = FieldDeclaration(name=p[2], type_name=p[1])

    def p_member_array(self, p: yacc.YaccProduction) -> None:
        """member : IDENTIFIER IDENTIFIER LBRACKET INTEGER RBRACKET SEMI"""
        p[0] = FieldDeclaration(name=p[2], type_name=p[1], count=p[4])

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""
        p[0] = None

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (line {p.lineno})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse_specs(self, data: str) -> list[StructSpec]:
        """Parse declarations without laying them out."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)
        self.lexer.lexer.lineno = 1
        return self.parser.parse(data, lexer=self.lexer.lexer) or []

    def parse(self, data: str, registry: TypeRegistry | None = None) -> TypeRegistry:
        """Parse declarations and return a registry holding every declared struct.

        Structs are added to ``registry`` when one is given.
        """
        specs = self.parse_specs(data)
        if registry is None:
            registry = TypeRegistry()

        builder = LayoutBuilder(registry, self.options)
        self.layouts = {}
        for spec in specs:
            self.layouts[spec.name] = builder.build(spec.name, spec.members)
        return registry
