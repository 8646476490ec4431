"""
Frame validator for the Kestrel virtual machine.

The validator performs static checks on a compiled frame before it is executed:

- the register file is large enough to hold every local
- every instruction carries the number of operands its opcode requires
- destination operands name registers inside the register file
- source operands resolve to a register or constant that exists
- LOAD_CONSTANT really loads from the constant pool
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from kestrel.kestrel_frame import KestrelFunctionFrame
from kestrel.kestrel_instruction import Instruction, Opcode
from kestrel.kestrel_operand import is_constant_ref, operand_in_bounds, register_in_bounds


class ValidationErrorType(Enum):
    """Types of validation errors."""
    INVALID_OPCODE = "invalid_opcode"
    INVALID_OPERAND_COUNT = "invalid_operand_count"
    INDEX_OUT_OF_BOUNDS = "index_out_of_bounds"
    INVALID_FRAME_SIZE = "invalid_frame_size"


@dataclass
class ValidationError(Exception):
    """Frame validation error with detailed context."""
    error_type: ValidationErrorType
    message: str
    instruction_index: Optional[int] = None
    opcode: Optional[Opcode] = None

    def __str__(self) -> str:
        parts = [f"Frame validation error: {self.message}"]
        if self.instruction_index is not None:
            parts.append(f"  at instruction {self.instruction_index}")

        if self.opcode is not None:
            parts.append(f"  opcode: {self.opcode.name}")

        return "\n".join(parts)


class FrameValidator:
    """Validates Kestrel function frames for correctness and safety."""

    def validate(self, frame: KestrelFunctionFrame) -> None:
        """
        Validate a function frame.

        Raises ValidationError if the frame is invalid.

        Args:
            frame: Frame to validate
        """
        self._validate_structure(frame)
        for i, instr in enumerate(frame.instructions):
            self._validate_instruction(frame, i, instr)

        if frame.result is not None and not operand_in_bounds(frame.result, frame.size, len(frame.constants)):
            raise ValidationError(
                ValidationErrorType.INDEX_OUT_OF_BOUNDS,
                f"Result reference {frame.result} out of bounds"
            )

    def _validate_structure(self, frame: KestrelFunctionFrame) -> None:
        """Validate basic structural properties."""
        if frame.size < len(frame.locals):
            raise ValidationError(
                ValidationErrorType.INVALID_FRAME_SIZE,
                f"Frame size {frame.size} is smaller than its {len(frame.locals)} locals"
            )

        if frame.in_count < 0 or frame.out_count < 0:
            raise ValidationError(
                ValidationErrorType.INVALID_FRAME_SIZE,
                f"Negative arity: in={frame.in_count}, out={frame.out_count}"
            )

    def _validate_instruction(self, frame: KestrelFunctionFrame, index: int, instr: Instruction) -> None:
        """Validate one instruction's opcode and operands."""
        opcode = instr.opcode
        if not isinstance(opcode, Opcode):
            raise ValidationError(
                ValidationErrorType.INVALID_OPCODE,
                f"Invalid opcode type: {type(opcode)}",
                instruction_index=index
            )

        if len(instr.args) != opcode.arg_count:
            raise ValidationError(
                ValidationErrorType.INVALID_OPERAND_COUNT,
                f"{opcode.name} expects {opcode.arg_count} operands, got {len(instr.args)}",
                instruction_index=index,
                opcode=opcode
            )

        # Every opcode so far writes its first operand
        dst = instr.args[0]
        if not register_in_bounds(dst, frame.size):
            raise ValidationError(
                ValidationErrorType.INDEX_OUT_OF_BOUNDS,
                f"Destination register {dst} out of bounds (size {frame.size})",
                instruction_index=index,
                opcode=opcode
            )

        for src in instr.args[1:]:
            if not operand_in_bounds(src, frame.size, len(frame.constants)):
                kind = "Constant" if is_constant_ref(src) else "Register"
                raise ValidationError(
                    ValidationErrorType.INDEX_OUT_OF_BOUNDS,
                    f"{kind} reference {src} out of bounds",
                    instruction_index=index,
                    opcode=opcode
                )

        if opcode == Opcode.LOAD_CONSTANT and not is_constant_ref(instr.args[1]):
            raise ValidationError(
                ValidationErrorType.INDEX_OUT_OF_BOUNDS,
                f"LOAD_CONSTANT source {instr.args[1]} is not a constant reference",
                instruction_index=index,
                opcode=opcode
            )


def validate_frame(frame: KestrelFunctionFrame) -> None:
    """
    Validate a function frame.

    Convenience function that creates a validator and runs it.

    Args:
        frame: Frame to validate

    Raises:
        ValidationError: If the frame is invalid
    """
    validator = FrameValidator()
    validator.validate(frame)
