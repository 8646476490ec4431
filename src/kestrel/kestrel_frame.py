"""Compiled function frames for the Kestrel virtual machine."""

from dataclasses import dataclass
from typing import Optional, Tuple

from kestrel.kestrel_instruction import Instruction
from kestrel.kestrel_operand import format_operand
from kestrel.kestrel_value import KestrelValue


@dataclass(frozen=True)
class KestrelFunctionFrame:
    """
    Compiled function frame: everything the VM needs to execute a program.

    Frames are immutable once built, so several VMs may execute the same frame
    at the same time.  Each VM owns its own register file and program counter.
    """

    # Input/output arity (reserved; no instruction uses these yet)
    in_count: int
    out_count: int

    # Total register file size (locals followed by temporaries)
    size: int

    # Constant pool, addressed by negative operand references
    constants: Tuple[KestrelValue, ...]

    # Local variable names, in register order
    locals: Tuple[str, ...]

    # Instruction sequence
    instructions: Tuple[Instruction, ...]

    # Operand reference holding the root expression's value after execution
    result: Optional[int] = None

    @property
    def temporary_count(self) -> int:
        """Number of registers in the temporary region."""
        return self.size - len(self.locals)

    def get_instruction(self, pc: int) -> Optional[Instruction]:
        """Return the instruction at pc, or None if pc is past the end of the code."""
        if pc < 0 or pc >= len(self.instructions):
            return None

        return self.instructions[pc]

    def register_name(self, index: int) -> str:
        """Return the local variable name for a register, or a temporary label."""
        if index < len(self.locals):
            return self.locals[index]

        return f"<temp-{index - len(self.locals)}>"

    def __repr__(self) -> str:
        """Human-readable representation."""
        lines = ["KestrelFunctionFrame"]
        lines.append(f"  Size: {self.size} ({len(self.locals)} locals, {self.temporary_count} temporaries)")
        lines.append("  Constants:")
        for i, const in enumerate(self.constants):
            lines.append(f"    k{i}: {const.describe()}")

        lines.append("  Locals:")
        for i, name in enumerate(self.locals):
            lines.append(f"    r{i}: {name}")

        lines.append("  Instructions:")
        for i, instr in enumerate(self.instructions):
            lines.append(f"    {i:3d}: {instr}")

        if self.result is not None:
            lines.append(f"  Result: {format_operand(self.result)}")

        return "\n".join(lines)

    def disassemble(self) -> str:
        """Return disassembled code for debugging."""
        return repr(self)
