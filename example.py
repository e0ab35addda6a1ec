"""Example usage of the typed_records library."""

from pathlib import Path

from typed_records import Codec, SchemaParser

# Declare the record layouts using the schema DSL
schema = """
struct Car {
    int32 id;
    float64 price;
    char brand[32];
};

struct Person {
    int32 age;
    char name[32];
    Car car;
    int32 phone_numbers[5];
};
"""

registry = SchemaParser().parse(schema)
registry.freeze()
codec = Codec(registry)

# Fill a zeroed Person record from JSON
person = codec.new_record("Person")
failures = codec.decode_from_text(
    "Person",
    '{"age": 30, "name": "John Doe", "car": {"id": 1, "price": 19999.5, "brand": "Volvo"},'
    ' "phone_numbers": [5551234, 5555678, 1, 2, 3, 4, 5]}',
    person,
)
print(f"Decoded Person ({len(person)} bytes), {len(failures)} failed fields")

# Write the raw record and read it back
record_file = Path("./person.bin")
record_file.write_bytes(bytes(person))
print(f"Wrote {record_file} ({record_file.stat().st_size} bytes)")

print("\nRecord as JSON:")
print(codec.encode_to_text("Person", record_file.read_bytes(), indent=2))

print("\n" + "=" * 60)
print("The same conversions are available from the command line:")
print("  typed-records describe schema.tr Person")
print("  typed-records encode schema.tr Person person.bin")
print("  typed-records decode schema.tr Person person.json -o person.bin")
