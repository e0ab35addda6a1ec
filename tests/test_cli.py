"""Tests for the typed-records command-line tool."""

from __future__ import annotations

import json
import struct
from pathlib import Path

import pytest

from typed_records.cli import main

SCHEMA = """
struct Car {
    int32 id;
    float64 price;
    char brand[16];
};

struct Owner {
    char name[8];
    Car car;
    pointer next;
};
"""

# Little-endian Car: id @0, price @8, brand @16, 32 bytes in total
CAR_FORMAT = "<i4xd16s"


@pytest.fixture
def schema(tmp_path: Path) -> Path:
    path = tmp_path / "vehicles.tr"
    path.write_text(SCHEMA)
    return path


class TestDescribe:
    """Tests for the describe command."""

    def test_list_types(self, schema, capsys):
        assert main(["describe", str(schema)]) == 0
        out = capsys.readouterr().out
        assert out.splitlines() == ["Car (32 bytes)", "Owner (48 bytes)"]

    def test_show_type(self, schema, capsys):
        assert main(["describe", str(schema), "Owner"]) == 0
        out = capsys.readouterr().out
        assert "Owner (48 bytes)" in out
        assert "struct" in out and "Car" in out
        assert "pointer" in out

    def test_unknown_type(self, schema, capsys):
        assert main(["describe", str(schema), "Boat"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_bad_schema(self, tmp_path, capsys):
        path = tmp_path / "bad.tr"
        path.write_text("struct Car { int32 }")
        assert main(["describe", str(path)]) == 1
        assert "Syntax error" in capsys.readouterr().err

    def test_missing_schema(self, tmp_path, capsys):
        assert main(["describe", str(tmp_path / "none.tr")]) == 1
        assert "Error:" in capsys.readouterr().err


class TestEncode:
    """Tests for the encode command."""

    def test_encode(self, schema, tmp_path, capsys):
        record = tmp_path / "car.bin"
        record.write_bytes(struct.pack(CAR_FORMAT, 7, 19999.5, b"Volvo"))

        assert main(["--byte-order", "little", "encode", str(schema), "Car", str(record)]) == 0

        out = capsys.readouterr().out
        assert out.strip() == '{"id":7,"price":19999.5,"brand":"Volvo"}'

    def test_encode_indented(self, schema, tmp_path, capsys):
        record = tmp_path / "car.bin"
        record.write_bytes(struct.pack(CAR_FORMAT, 7, 1.0, b"Saab"))

        args = ["--byte-order", "little", "encode", str(schema), "Car", str(record), "--indent", "2"]
        assert main(args) == 0

        assert json.loads(capsys.readouterr().out) == {"id": 7, "price": 1.0, "brand": "Saab"}

    def test_encode_short_record(self, schema, tmp_path, capsys):
        record = tmp_path / "car.bin"
        record.write_bytes(b"\x00" * 10)

        assert main(["encode", str(schema), "Car", str(record)]) == 1
        assert "needs 32" in capsys.readouterr().err


class TestDecode:
    """Tests for the decode command."""

    def test_decode_new_record(self, schema, tmp_path, capsys):
        source = tmp_path / "car.json"
        source.write_text('{"id": 7, "price": 19999.5, "brand": "Volvo"}')
        output = tmp_path / "car.bin"

        args = ["--byte-order", "little", "decode", str(schema), "Car", str(source), "-o", str(output)]
        assert main(args) == 0

        assert output.read_bytes() == struct.pack(CAR_FORMAT, 7, 19999.5, b"Volvo")
        assert "Wrote" in capsys.readouterr().err

    def test_decode_onto_base(self, schema, tmp_path):
        """Test that fields missing from the JSON keep the base record's values."""
        base = tmp_path / "base.bin"
        base.write_bytes(struct.pack(CAR_FORMAT, 1, 2.5, b"Saab"))
        source = tmp_path / "car.json"
        source.write_text('{"id": 9}')
        output = tmp_path / "car.bin"

        args = [
            "--byte-order", "little", "decode", str(schema), "Car", str(source),
            "-o", str(output), "--base", str(base),
        ]
        assert main(args) == 0

        assert output.read_bytes() == struct.pack(CAR_FORMAT, 9, 2.5, b"Saab")

    def test_decode_pointer(self, schema, tmp_path):
        base = tmp_path / "base.bin"
        base.write_bytes(b"\x01" * 48)
        source = tmp_path / "owner.json"
        source.write_text('{"next": "[pointer]"}')
        output = tmp_path / "owner.bin"
        common = ["decode", str(schema), "Owner", str(source), "-o", str(output), "--base", str(base)]

        assert main(common) == 0
        assert output.read_bytes()[40:] == b"\x00" * 8

        assert main(["--keep-pointers"] + common) == 0
        assert output.read_bytes()[40:] == b"\x01" * 8

    def test_decode_reports_failures(self, schema, tmp_path, capsys):
        source = tmp_path / "car.json"
        source.write_text('{"id": "seven", "price": 1.0}')
        output = tmp_path / "car.bin"

        assert main(["decode", str(schema), "Car", str(source), "-o", str(output)]) == 0

        assert "Warning: Field 'id'" in capsys.readouterr().err

    def test_decode_malformed_json(self, schema, tmp_path, capsys):
        source = tmp_path / "car.json"
        source.write_text("{oops")
        output = tmp_path / "car.bin"

        assert main(["decode", str(schema), "Car", str(source), "-o", str(output)]) == 1
        assert "JSON parsing error" in capsys.readouterr().err
        assert not output.exists()

    def test_decode_empty_json(self, schema, tmp_path, capsys):
        source = tmp_path / "car.json"
        source.write_text("")
        output = tmp_path / "car.bin"

        assert main(["decode", str(schema), "Car", str(source), "-o", str(output)]) == 1
        assert "Empty JSON" in capsys.readouterr().err
