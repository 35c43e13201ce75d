# bilge

Bit-sized types for Python: unsigned integers of an exact width, bitfield
structs and bitfield enums. A struct or enum is stored as one integer and
its fields are unpacked on access. The package has no dependencies beyond
the standard library.

## A first example

```python
from bilge.attributes import bitsize
from bilge.enums import BitEnum, variant
from bilge.structs import Bitfield
from bilge.uint import u


@bitsize(2, derive=["FromBits"])
class Code(BitEnum):
    Success = variant()
    Error = variant()
    IoError = variant()
    GoodExample = variant()


@bitsize(3, derive=["FromBits"])
class Footer(Bitfield):
    is_last: bool
    code: Code


@bitsize(14, derive=["FromBits", "DebugBits"])
class Register(Bitfield):
    header: u(4)
    body: u(7)
    footer: Footer


reg = Register(u(4)(0b1010), u(7)(0b010_1010), Footer(True, Code.GoodExample))
assert reg == Register.from_bits(0b11_1_0101010_1010)
assert reg.value == 0b11_1_0101010_1010
reg.footer = Footer(False, Code.Success)
```

The first field occupies the least significant bits. Fields are declared as
class annotations, which must be evaluated field types (do not use
`from __future__ import annotations` in the module that declares them), or
in a `FIELDS` sequence, described below.

## Modules

### `bilge.uint`

- `u(bits)` returns the `UInt` subclass for a width of 1 to 128 bits;
  `u(4)(9)` is a 4-bit integer. Values out of range raise `ValueError`, and
  `bool` values are refused. `UInt` values compare equal to plain integers,
  support `int()`, indexing and `format()`, and expose `.value`.
- `bits_of(ty)` gives the width of a bitsized type (`bool` counts as one
  bit), `max_of(ty)` its largest value. Every type made by `u` has `BITS`
  and `MAX`.
- `BitsError` is raised when a bit pattern has no valid meaning.

### `bilge.types`

Field types are `bool`, the `u(n)` types, built `Bitfield`/`BitEnum`
classes, tuples of field types (values are Python tuples) and
`Array(elem, length)` (values are lists). `type_bitsize`, `type_mask`,
`pack`, `unpack` and `is_valid` work on all of them; `is_always_filled`
tells whether a type accepts every bit pattern by its kind alone,
`bitsize_from_type_name` reads the width from a name such as `"u12"` or
`"bool"`, `parse_bitsize` validates a declared width, and
`check_type_is_supported` rejects anything else.

### `bilge.enums`

Subclass `BitEnum`, declare variants with `variant(discriminant=None, *,
fallback=False, with_value=False)` and finish the class with
`build_enum(cls, bits, filled=...)` (or the `bitsize` decorator).
Discriminants are implicit `previous + 1` unless given; they must fit the
width, and a width is at most 64 bits.

- `Cls.from_bits(n)` converts infallibly; only for enums that fill their
  width or have a fallback.
- `Cls.try_from_bits(n)` raises `BitsError` for unknown patterns.
- `member.to_bits()` returns the discriminant as a `UInt`.

A unit fallback receives every unknown pattern and converts back to its own
discriminant. A fallback with a value must be the last variant; it keeps
the original number:

```python
@bitsize(32, derive=["FromBits"])
class Subclass(BitEnum):
    Mouse = variant()
    Keyboard = variant()
    Speakers = variant()
    Reserved = variant(fallback=True, with_value=True)

assert Subclass.from_bits(42) == Subclass.Reserved(42)
assert Subclass.from_bits(42).to_bits() == 42
```

`DiscriminantAssigner`, `Fallback`, `FallbackKind` and
`enum_fills_bitsize` are the helpers behind these checks.

### `bilge.structs`

Subclass `Bitfield` and finish it with `build_struct(cls, bits,
filled=...)` (or `bitsize`). The declared width must equal the sum of the
field widths.

- Each field is a property; assigning to it rewrites those bits.
- Array fields also get `<name>_at(index)` and `set_<name>_at(index,
  value)`; an index out of range raises `IndexError`.
- `FIELDS` may hold `(name, type)` pairs, which allows repeating
  `reserved` or `padding`: these are renamed `reserved_i`, `reserved_ii`, …
  (see `rename_special_fields`), are read-only and are left out of the
  constructor, which sets them to zero.
- `FIELDS` may instead hold bare types for a positional struct; its fields
  are named `val_0`, `val_1`, ….
- `Cls.from_bits(n)` needs every field type to accept every pattern;
  `Cls.try_from_bits(n)` checks nested enums and raises `BitsError`.
- `.value` holds the raw `UInt`; `.to_bits()` returns it. Setting `.value`
  directly bypasses validation.

```python
@bitsize(32, derive=["FromBits"])
class InterruptSetEnables(Bitfield):
    FIELDS = [Array(bool, 32)]

ise = InterruptSetEnables.from_bits(0b1_0000)
ise.set_val_0_at(2, ise.val_0_at(4))
assert ise.value == 0b1_0100
```

`FieldSpec` records each field's name, type, offset and size.

### `bilge.formatting`

- `debug_bits(cls)` gives a struct a repr such as
  `MultiField { field1: 1, field2: 1, field3: 3 }` or `Array([1, 1, 0, 0])`.
- `binary_bits(cls)` makes `format(value, "b")` (and `"#b"`) write the
  bits: struct fields most significant first, each padded to its size and
  separated by `_`; enums padded to their width. `format_binary(value)`
  gives the same text.
- `default_bits(cls)` adds a `default()` class method: integers are zero,
  `bool` is `False`, other field types use their own `default()`.

### `bilge.serde`

`serialize(value)` turns a named struct into a dict and a positional one
into a list; nested structs are nested, enum members become their variant
name (a value fallback becomes `{name: number}`). Reserved and padding
fields are left out (`serializable_fields(cls)` lists the rest).
`deserialize(cls, data)` accepts a dict (named structs only) or a sequence
and raises `DeserializeError` with messages such as
``missing field `field2` `` or
``unknown field `field3`, expected `field1` or `field2` ``.

### `bilge.attributes`

`bitsize(bits, *, derive=())` validates the width and builds the class.
Derives are given as names or paths (`"FromBits"`, `"bilge::DebugBits"`,
`"core::fmt::Debug"`) or as functions:

- `FromBits` / `TryFromBits` choose infallible or fallible conversion; an
  enum with neither is treated as filled if it fills its width or has a
  fallback.
- `DebugBits`, `BinaryBits` and `DefaultBits` apply the functions of
  `bilge.formatting`; `SerializeBits` adds `to_data()` and
  `DeserializeBits` adds `from_data(data)`.
- `Default` on a struct means `DefaultBits`; `Debug` on a struct is
  refused in favour of `DebugBits`; `zerocopy::FromBytes` requires
  `FromBits`.
- `register_derive(name, func)` adds a derive of your own; `func(cls)`
  receives the built class. Derives whose last name ends in `Bits` run
  first.

Definition mistakes (a width of 0 or above 128, an enum over 64 bits, an
enum that does not fill its width under `FromBits` without a fallback, more
than one fallback, a value fallback that is not last, and the like) raise
`BitfieldDefinitionError`. `Derive` and `SplitAttributes` expose the derive
matching and ordering.

## What it does not do

bilge only packs and unpacks Python integers. It has no command line, does
not read or write memory, devices or hardware registers, and offers no byte
views of a bitfield: `zerocopy::FromBytes` is accepted as a derive but adds
nothing.