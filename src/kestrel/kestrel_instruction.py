"""Instruction definitions for the Kestrel virtual machine."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple


def _op(n: int, arg_count: int) -> Tuple[int, int]:
    """Helper to construct an Opcode value: (integer_value, operand_count)."""
    return (n, arg_count)


class Opcode(IntEnum):
    """
    Instruction operation codes.

    Each member's value is a (integer_value, operand_count) tuple.  The integer value is
    used for VM dispatch and the operand count is exposed via the arg_count property.
    """

    _arg_count: int  # Set in __new__; declared here so mypy knows the attribute exists

    def __new__(cls, int_value: int, arg_count: int = 0) -> 'Opcode':
        obj = int.__new__(cls, int_value)
        obj._value_ = int_value
        obj._arg_count = arg_count
        return obj

    @property
    def arg_count(self) -> int:
        """Number of operands the instruction carries."""
        return self._arg_count

    # Data movement
    MOVE = _op(1, 2)                    # MOVE dst, src
    LOAD_CONSTANT = _op(2, 2)           # LOAD_CONSTANT dst, k

    # Arithmetic
    ADD = _op(10, 3)                    # ADD dst, lhs, rhs


@dataclass(frozen=True)
class Instruction:
    """
    Single VM instruction.

    Operands are stored in a tuple whose length should match the opcode's arg_count
    (the frame validator enforces this).  Value operands are operand references
    (see kestrel_operand); destinations are always register indices.
    """
    opcode: Opcode
    args: Tuple[int, ...] = ()

    def __str__(self) -> str:
        if not self.args:
            return self.opcode.name

        return f"{self.opcode.name} {', '.join(str(a) for a in self.args)}"


def make_move(dst: int, src: int) -> Instruction:
    """MOVE dst, src."""
    return Instruction(Opcode.MOVE, (dst, src))


def make_load_constant(dst: int, k: int) -> Instruction:
    """LOAD_CONSTANT dst, k (k is an encoded constant reference)."""
    return Instruction(Opcode.LOAD_CONSTANT, (dst, k))


def make_add(dst: int, lhs: int, rhs: int) -> Instruction:
    """ADD dst, lhs, rhs."""
    return Instruction(Opcode.ADD, (dst, lhs, rhs))
