"""Bit-sized integers, bitfield structs and bitfield enums packed into a single integer.

Modules: uint, types, enums, structs, formatting, serde, attributes and paths.
"""

__version__ = "0.2.0"