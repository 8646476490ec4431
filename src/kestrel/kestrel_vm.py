"""Kestrel Virtual Machine - steps through a compiled function frame one instruction at a time."""

from enum import Enum
import logging
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from kestrel.kestrel_error import KestrelRuntimeError, KestrelTypeError
from kestrel.kestrel_frame import KestrelFunctionFrame
from kestrel.kestrel_frame_validator import validate_frame
from kestrel.kestrel_instruction import Instruction, Opcode
from kestrel.kestrel_operand import (
    constant_in_bounds, decode_constant, format_operand, is_constant_ref, register_in_bounds
)
from kestrel.kestrel_value import KestrelValue, KestrelNumber, Kestrel_NIL


class KestrelStepWatcher(Protocol):
    """Protocol for observers notified after every executed instruction."""
    def on_step(self, pc: int, instruction: Instruction, registers: Sequence[KestrelValue]) -> None:
        """
        Called after an instruction has executed.

        Args:
            pc: Index of the instruction that was executed
            instruction: The instruction that was executed
            registers: Snapshot of the register file after execution
        """


class KestrelVMState(Enum):
    """Execution states of the virtual machine."""
    RUNNING = "running"
    HALTED = "halted"
    FAULTED = "faulted"


class KestrelVM:
    """
    Register-based virtual machine for executing Kestrel function frames.

    The VM has no run-to-completion loop: callers drive it with step(), which lets
    a stepper or visualizer inspect the register file between instructions.
    """

    def __init__(self, frame: KestrelFunctionFrame, validate: bool = True) -> None:
        """
        Initialize a VM for one frame.

        Args:
            frame: Compiled frame to execute
            validate: Whether to validate the frame before execution
        """
        if validate:
            validate_frame(frame)

        self._logger = logging.getLogger("KestrelVM")
        self._frame = frame
        self._registers: List[KestrelValue] = [Kestrel_NIL] * frame.size
        self._pc = 0
        self._state = KestrelVMState.RUNNING

        # Step watcher for debugging support
        self._step_watcher: Optional[KestrelStepWatcher] = None

        self._dispatch_table = self._build_dispatch_table()

    def _build_dispatch_table(self) -> Dict[Opcode, Callable[..., None]]:
        """
        Build the opcode dispatch table.

        New instructions are added by registering a handler here; step() does not change.
        """
        return {
            Opcode.MOVE: self._op_move,
            Opcode.LOAD_CONSTANT: self._op_load_constant,
            Opcode.ADD: self._op_add,
        }

    @property
    def frame(self) -> KestrelFunctionFrame:
        """The frame being executed."""
        return self._frame

    @property
    def pc(self) -> int:
        """Index of the next instruction to execute."""
        return self._pc

    @property
    def state(self) -> KestrelVMState:
        """Current execution state."""
        return self._state

    @property
    def registers(self) -> Tuple[KestrelValue, ...]:
        """Snapshot of the register file."""
        return tuple(self._registers)

    def is_halted(self) -> bool:
        """Return True once the VM has run past its last instruction."""
        return self._state == KestrelVMState.HALTED

    def set_step_watcher(self, watcher: Optional[KestrelStepWatcher]) -> None:
        """
        Set the step watcher (replaces any existing watcher).

        Args:
            watcher: KestrelStepWatcher instance or None to disable notifications
        """
        self._step_watcher = watcher

    def get_register(self, index: int) -> KestrelValue:
        """Read a register, failing if the index is outside the register file."""
        if not register_in_bounds(index, self._frame.size):
            raise KestrelRuntimeError(
                message=f"Invalid register index {index}",
                expected=f"0 <= index < {self._frame.size}",
                received=str(index)
            )

        return self._registers[index]

    def set_register(self, index: int, value: KestrelValue) -> None:
        """Write a register, failing if the index is outside the register file."""
        if not register_in_bounds(index, self._frame.size):
            raise KestrelRuntimeError(
                message=f"Invalid register index {index}",
                expected=f"0 <= index < {self._frame.size}",
                received=str(index)
            )

        self._registers[index] = value

    def get_constant(self, ref: int) -> KestrelValue:
        """Read a constant by its (negative) operand reference."""
        constant_count = len(self._frame.constants)
        if not constant_in_bounds(ref, constant_count):
            raise KestrelRuntimeError(
                message=f"Invalid constant index {ref}",
                expected=f"-{constant_count} <= reference <= -1",
                received=str(ref)
            )

        return self._frame.constants[decode_constant(ref)]

    def get_value(self, ref: int) -> KestrelValue:
        """Resolve an operand reference to the value it denotes, wherever it lives."""
        if is_constant_ref(ref):
            return self.get_constant(ref)

        return self.get_register(ref)

    def result(self) -> Optional[KestrelValue]:
        """Return the value of the frame's root expression, or None if the frame has no result."""
        if self._frame.result is None:
            return None

        return self.get_value(self._frame.result)

    def step(self) -> bool:
        """
        Execute one instruction.

        Returns:
            True if an instruction was executed, False if the VM has halted
        """
        if self._state == KestrelVMState.FAULTED:
            raise KestrelRuntimeError(
                message="Cannot step a faulted VM",
                suggestion="Create a new VM for the frame after a runtime error"
            )

        pc = self._pc
        instr = self._frame.get_instruction(pc)
        if instr is None:
            if self._state != KestrelVMState.HALTED:
                self._logger.debug("halted at pc %d", pc)

            self._state = KestrelVMState.HALTED
            return False

        handler = self._dispatch_table.get(instr.opcode)
        if handler is None:
            self._state = KestrelVMState.FAULTED
            raise KestrelRuntimeError(f"Unimplemented opcode: {instr.opcode}")

        if len(instr.args) != instr.opcode.arg_count:
            self._state = KestrelVMState.FAULTED
            raise KestrelRuntimeError(
                message=f"Malformed instruction at {pc}: {instr}",
                expected=f"{instr.opcode.arg_count} operands",
                received=f"{len(instr.args)} operands"
            )

        # Increment pc before executing (so control flow handlers can override)
        self._pc = pc + 1

        try:
            handler(*instr.args)

        except KestrelRuntimeError:
            self._state = KestrelVMState.FAULTED
            raise

        self._logger.debug("%3d: %s", pc, instr)

        if self._step_watcher is not None:
            self._step_watcher.on_step(pc, instr, self.registers)

        return True

    def _op_move(self, dst: int, src: int) -> None:
        """MOVE: Copy the value at operand reference src into register dst."""
        self.set_register(dst, self.get_value(src))

    def _op_load_constant(self, dst: int, k: int) -> None:
        """LOAD_CONSTANT: Copy constant k into register dst."""
        self.set_register(dst, self.get_constant(k))

    def _op_add(self, dst: int, lhs: int, rhs: int) -> None:
        """ADD: Store the sum of two numbers into register dst."""
        left = self._check_number(self.get_value(lhs), lhs)
        right = self._check_number(self.get_value(rhs), rhs)
        self.set_register(dst, KestrelNumber(left.to_python() + right.to_python()))

    def _check_number(self, value: KestrelValue, ref: int) -> KestrelNumber:
        """Ensure an arithmetic operand is a number; no coercion is performed."""
        if not isinstance(value, KestrelNumber):
            raise KestrelTypeError(
                message=f"Expected a number, got {value.type_name()}",
                context=f"Operand {format_operand(ref)} holds {value.describe()}",
                expected="number",
                received=value.type_name()
            )

        return value

    def describe_state(self) -> str:
        """
        Render constants, instructions and registers as text.

        The instruction about to execute is marked with '>'.
        """
        lines: List[str] = [f"State: {self._state.value}, pc: {self._pc}"]
        lines.append("Constants:")
        for i, const in enumerate(self._frame.constants):
            lines.append(f"  k{i}: {const.describe()}")

        lines.append("Instructions:")
        for i, instr in enumerate(self._frame.instructions):
            marker = ">" if i == self._pc else " "
            lines.append(f"{marker} {i:3d}: {instr}")

        lines.append("Registers:")
        for i, value in enumerate(self._registers):
            lines.append(f"  r{i} {self._frame.register_name(i)}: {value.describe()}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"KestrelVM(state={self._state.value}, pc={self._pc}, size={len(self._registers)})"
