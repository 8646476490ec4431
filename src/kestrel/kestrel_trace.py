"""Kestrel step watcher implementations.

This module provides standard step watcher implementations for observing
the virtual machine as it executes a frame.
"""

from typing import List, Sequence

from kestrel.kestrel_instruction import Instruction
from kestrel.kestrel_value import KestrelValue


def format_step(pc: int, instruction: Instruction, registers: Sequence[KestrelValue]) -> str:
    """Format one executed step as a single line of text."""
    regs = " ".join(f"r{i}={value.describe()}" for i, value in enumerate(registers))
    return f"{pc:3d}: {str(instruction):<24} | {regs}"


class KestrelStdoutStepWatcher:
    """Watcher that prints each executed step to stdout."""

    def on_step(self, pc: int, instruction: Instruction, registers: Sequence[KestrelValue]) -> None:
        """
        Print the executed step to stdout.

        Args:
            pc: Index of the executed instruction
            instruction: The executed instruction
            registers: Register file after execution
        """
        print(format_step(pc, instruction, registers))


class KestrelBufferingStepWatcher:
    """
    Watcher that buffers formatted steps for programmatic access.

    Includes a configurable limit to prevent unbounded memory growth.
    """

    def __init__(self, max_steps: int = 10000) -> None:
        """
        Initialize buffering step watcher.

        Args:
            max_steps: Maximum number of steps to buffer (default: 10000).
                       When limit is reached, oldest steps are discarded.
        """
        self.steps: List[str] = []
        self.max_steps = max_steps
        self.total_steps = 0  # Total number of steps received (including discarded)
        self.clipped = False  # Whether steps have been clipped

    def on_step(self, pc: int, instruction: Instruction, registers: Sequence[KestrelValue]) -> None:
        """
        Buffer the executed step.

        If the buffer is full, the oldest step is removed before adding the new one.
        """
        self.total_steps += 1

        if len(self.steps) >= self.max_steps:
            self.steps.pop(0)
            self.clipped = True

        self.steps.append(format_step(pc, instruction, registers))

    def get_steps(self) -> List[str]:
        """Get all buffered steps."""
        return self.steps.copy()

    def clear(self) -> None:
        """Clear all buffered steps."""
        self.steps.clear()
        self.total_steps = 0
        self.clipped = False

    def is_clipped(self) -> bool:
        """Check if steps have been clipped due to buffer limit."""
        return self.clipped

    def get_total_count(self) -> int:
        """Get total number of steps received (including discarded)."""
        return self.total_steps
