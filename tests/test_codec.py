"""End-to-end tests for Codec with ctypes records."""

import ctypes
import json
import math

import pytest

from typed_records.codec import Codec, ConversionReport, dumps
from typed_records.exceptions import (
    EmptyInputError,
    NotRegisteredError,
    ParseError,
    ReadOnlyRecordError,
    TypedRecordsError,
    TypeMismatchError,
)
from typed_records.layout import register_ctypes, type_id_of
from typed_records.registry import TypeRegistry

LOGGER_FUNC = ctypes.CFUNCTYPE(None, ctypes.c_char_p)


class Employee(ctypes.Structure):
    _fields_ = [
        ("age", ctypes.c_int32),
        ("name", ctypes.c_char * 32),
        ("salary", ctypes.c_double),
    ]


class Car(ctypes.Structure):
    _fields_ = [
        ("id", ctypes.c_int32),
        ("price", ctypes.c_double),
        ("brand", ctypes.c_char * 32),
        ("model", ctypes.c_char * 32),
    ]


class Person(ctypes.Structure):
    _fields_ = [
        ("age", ctypes.c_int32),
        ("name", ctypes.c_char * 32),
        ("car", Car),
        ("phone_numbers", ctypes.c_int32 * 5),
    ]


class Company(ctypes.Structure):
    _fields_ = [
        ("name", ctypes.c_char * 32),
        ("employees", Person * 10),
        ("employee_count", ctypes.c_int32),
    ]


class SystemConfig(ctypes.Structure):
    _fields_ = [
        ("log_level", ctypes.c_int32),
        ("enable_debug", ctypes.c_bool),
        ("logger", LOGGER_FUNC),
    ]


class Level5(ctypes.Structure):
    _fields_ = [("id", ctypes.c_int32), ("name", ctypes.c_char * 16), ("value", ctypes.c_double)]


class Level4(ctypes.Structure):
    _fields_ = [("id", ctypes.c_int32), ("name", ctypes.c_char * 16), ("items", Level5 * 3)]


class Level3(ctypes.Structure):
    _fields_ = [("id", ctypes.c_int32), ("name", ctypes.c_char * 16), ("items", Level4 * 2)]


class Level2(ctypes.Structure):
    _fields_ = [("id", ctypes.c_int32), ("name", ctypes.c_char * 16), ("items", Level3 * 2)]


class Level1(ctypes.Structure):
    _fields_ = [("id", ctypes.c_int32), ("name", ctypes.c_char * 16), ("items", Level2 * 2)]


@pytest.fixture
def codec():
    registry = TypeRegistry()
    for cls in (Employee, Company, SystemConfig, Level1):
        register_ctypes(registry, cls)
    registry.freeze()
    return Codec(registry)


def _build_levels() -> Level1:
    root = Level1(id=1, name=b"Level1")
    for i in range(2):
        l2 = root.items[i]
        l2.id, l2.name = i + 100, f"Level2_{i}".encode()
        for j in range(2):
            l3 = l2.items[j]
            l3.id, l3.name = i * 1000 + j + 1000, f"Level3_{i}_{j}".encode()
            for k in range(2):
                l4 = l3.items[k]
                l4.id, l4.name = i * 10000 + j * 1000 + k + 10000, f"Level4_{i}_{j}_{k}".encode()
                for m in range(3):
                    l5 = l4.items[m]
                    l5.id = i * 100000 + j * 10000 + k * 1000 + m + 100000
                    l5.name = f"Level5_{i}_{j}_{k}_{m}".encode()
                    l5.value = (i * 100 + j * 10 + k) * 1.1 + m * 0.5
    return root


class TestFlatRecords:
    """Tests for records of scalars and text."""

    def test_encode_to_text(self, codec):
        """Test the exact JSON text of a simple record."""
        employee = Employee(age=30, name=b"John Doe", salary=50000.5)
        text = codec.encode_to_text(type_id_of(Employee), employee)
        assert text == '{"age":30,"name":"John Doe","salary":50000.5}'

    def test_decode_from_text(self, codec):
        employee = Employee()
        failures = codec.decode_from_text(
            type_id_of(Employee), '{"age":30,"name":"John Doe","salary":50000.5}', employee
        )
        assert failures == []
        assert (employee.age, employee.name, employee.salary) == (30, b"John Doe", 50000.5)

    def test_indented_text(self, codec):
        employee = Employee(age=1, name=b"A", salary=0.0)
        text = codec.encode_to_text(type_id_of(Employee), employee, indent=2)
        assert json.loads(text) == {"age": 1, "name": "A", "salary": 0.0}
        assert "\n" in text

    def test_non_finite_float_is_null(self, codec):
        """Test that NaN and infinity serialize as null."""
        employee = Employee(age=1, name=b"A", salary=math.nan)
        text = codec.encode_to_text(type_id_of(Employee), employee)
        assert text == '{"age":1,"name":"A","salary":null}'

    def test_encode_accepts_bytes(self, codec):
        """Test encoding from a read-only copy of a record."""
        employee = Employee(age=7, name=b"Bo", salary=1.0)
        tree = codec.encode(type_id_of(Employee), bytes(employee))
        assert tree == {"age": 7, "name": "Bo", "salary": 1.0}

    def test_function_pointer(self, codec):
        """Test that function pointers are emitted as a marker and kept on decode."""
        callback = LOGGER_FUNC(lambda message: None)
        config = SystemConfig(log_level=2, enable_debug=True, logger=callback)
        tree = codec.encode(type_id_of(SystemConfig), config)
        assert tree == {"log_level": 2, "enable_debug": True, "logger": "[function_pointer]"}

        address = ctypes.cast(config.logger, ctypes.c_void_p).value
        codec.decode(type_id_of(SystemConfig), {"log_level": 3, "logger": None}, config)
        assert config.log_level == 3
        assert ctypes.cast(config.logger, ctypes.c_void_p).value == address


class TestNestedRecords:
    """Tests for nested records and record arrays."""

    def test_company(self, codec):
        """Test a record holding an array of records holding a record."""
        company = Company(name=b"Acme", employee_count=2)
        company.employees[1].age = 40
        company.employees[1].name = b"Ada"
        company.employees[1].car.brand = b"Volvo"
        company.employees[1].phone_numbers[0] = 5551234

        tree = codec.encode(type_id_of(Company), company)

        assert tree["name"] == "Acme"
        assert tree["employee_count"] == 2
        assert len(tree["employees"]) == 10
        second = tree["employees"][1]
        assert second["name"] == "Ada"
        assert second["car"]["brand"] == "Volvo"
        assert second["phone_numbers"] == [5551234, 0, 0, 0, 0]

    def test_company_decode_reports_nested_path(self, codec):
        company = Company()
        tree = {"employees": [{}, {"car": {"brand": 5}}], "employee_count": 1}

        failures = codec.decode(type_id_of(Company), tree, company)

        assert [f.path for f in failures] == ["employees[1].car.brand"]
        assert company.employee_count == 1

    def test_five_levels(self, codec):
        """Test round-tripping five levels of nested record arrays."""
        root = _build_levels()
        tree = codec.encode(type_id_of(Level1), root)

        deep = tree["items"][1]["items"][1]["items"][1]["items"][2]
        assert deep["name"] == "Level5_1_1_1_2"
        assert deep["id"] == 211002

        loaded = Level1()
        assert codec.decode(type_id_of(Level1), tree, loaded) == []
        assert loaded.items[1].items[1].items[1].items[2].name == b"Level5_1_1_1_2"
        assert loaded.items[1].items[1].items[1].items[2].value == pytest.approx(111 * 1.1 + 1.0)
        assert codec.encode(type_id_of(Level1), loaded) == tree
        assert bytes(loaded) == bytes(root)


class TestErrors:
    """Tests for errors raised by whole conversion calls."""

    def test_encode_unregistered(self, codec):
        with pytest.raises(NotRegisteredError) as exc_info:
            codec.encode("Missing", bytearray(8))
        assert exc_info.value.type_id == "Missing"

    def test_decode_unregistered(self, codec):
        with pytest.raises(NotRegisteredError):
            codec.decode("Missing", {}, bytearray(8))

    def test_decode_non_object(self, codec):
        with pytest.raises(TypeMismatchError):
            codec.decode(type_id_of(Employee), [1, 2], Employee())

    def test_decode_non_object_checked_first(self, codec):
        """Test that the tree shape is checked before the type lookup."""
        with pytest.raises(TypeMismatchError):
            codec.decode("Missing", "text", bytearray(8))

    def test_decode_read_only(self, codec):
        """Test that a read-only record is rejected with a library error."""
        with pytest.raises(ReadOnlyRecordError) as exc_info:
            codec.decode(type_id_of(Employee), {"age": 1}, bytes(Employee()))
        assert isinstance(exc_info.value, TypedRecordsError)
        assert isinstance(exc_info.value, TypeError)

    def test_empty_text(self, codec):
        with pytest.raises(EmptyInputError):
            codec.decode_from_text(type_id_of(Employee), "", Employee())

    def test_malformed_text(self, codec):
        employee = Employee(age=5)
        with pytest.raises(ParseError):
            codec.decode_from_text(type_id_of(Employee), "{not json", employee)
        assert employee.age == 5

    def test_non_finite_constant_rejected(self, codec):
        with pytest.raises(ParseError):
            codec.decode_from_text(type_id_of(Employee), '{"salary": NaN}', Employee())


class TestReport:
    """Tests for encode_report and helpers."""

    def test_clean_report(self, codec):
        report = codec.encode_report(type_id_of(Employee), Employee(age=3))
        assert isinstance(report, ConversionReport)
        assert report.ok
        assert report.value["age"] == 3

    def test_report_with_failures(self):
        registry = TypeRegistry()
        register_ctypes(registry, Employee)
        codec = Codec(registry)
        report = codec.encode_report(type_id_of(Employee), bytearray(8))
        assert not report.ok
        assert report.value["salary"] == "[error]"

    def test_new_record(self, codec):
        record = codec.new_record(type_id_of(Employee))
        assert record == bytearray(ctypes.sizeof(Employee))

    def test_new_record_unknown_size(self):
        registry = TypeRegistry()
        registry.register("Sizeless", [])
        with pytest.raises(ValueError):
            Codec(registry).new_record("Sizeless")

    def test_dumps(self):
        assert dumps({"a": [1, math.inf]}) == '{"a":[1,null]}'
