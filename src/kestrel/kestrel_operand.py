"""
Operand reference encoding.

Every instruction operand that denotes "a value" is a single signed integer:

- non-negative values index the register file directly
- negative values index the constant pool, with constant index ``-(ref) - 1``

All of the sign arithmetic lives here.
"""


def encode_register(index: int) -> int:
    """Encode a register index as an operand reference."""
    if index < 0:
        raise ValueError(f"Register index must be non-negative, got {index}")

    return index


def encode_constant(index: int) -> int:
    """Encode a constant pool index as an operand reference."""
    if index < 0:
        raise ValueError(f"Constant index must be non-negative, got {index}")

    return -index - 1


def is_constant_ref(ref: int) -> bool:
    """Return True if the operand reference denotes a constant pool entry."""
    return ref < 0


def decode_constant(ref: int) -> int:
    """Decode a constant operand reference back into a constant pool index."""
    return -ref - 1


def register_in_bounds(ref: int, size: int) -> bool:
    """Return True if ref is a register index inside a register file of the given size."""
    return 0 <= ref < size


def constant_in_bounds(ref: int, constant_count: int) -> bool:
    """Return True if ref is a constant reference inside a pool of the given length."""
    return 0 <= decode_constant(ref) < constant_count


def operand_in_bounds(ref: int, size: int, constant_count: int) -> bool:
    """Return True if ref resolves to a valid register or constant."""
    if is_constant_ref(ref):
        return constant_in_bounds(ref, constant_count)

    return register_in_bounds(ref, size)


def format_operand(ref: int) -> str:
    """Describe an operand reference for annotations, e.g. ``r3`` or ``k0``."""
    if is_constant_ref(ref):
        return f"k{decode_constant(ref)}"

    return f"r{ref}"
