#!/usr/bin/env python3
"""
Kestrel Stepper - Compile a demo program and step the VM, showing its state.

This tool compiles a built-in example tree (Kestrel has no text parser) and shows:
- Annotated disassembly of the compiled frame
- The constants, instructions and registers after every step

Usage:
    python kestrel_step.py
    python kestrel_step.py --steps 3       # Stop after three instructions
    python kestrel_step.py --compact       # One line per step instead of the full state
"""

import argparse
from pathlib import Path
import sys
from typing import List

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from kestrel import Kestrel, KestrelError
from kestrel.kestrel_ast import (
    KestrelASTNode, KestrelASTAdd, KestrelASTBlock, KestrelASTConstant,
    KestrelASTLet, KestrelASTSet, KestrelASTVar
)
from kestrel.kestrel_frame import KestrelFunctionFrame
from kestrel.kestrel_instruction import Instruction, Opcode
from kestrel.kestrel_operand import format_operand, is_constant_ref, decode_constant
from kestrel.kestrel_trace import KestrelStdoutStepWatcher
from kestrel.kestrel_value import make_number


def build_demo_program() -> KestrelASTNode:
    """Build the demo tree: a few lets and assignments over numbers."""
    return KestrelASTBlock((
        KestrelASTLet("a", KestrelASTAdd(KestrelASTConstant(make_number(2)), KestrelASTConstant(make_number(2)))),
        KestrelASTLet("b", KestrelASTAdd(KestrelASTConstant(make_number(3)), KestrelASTVar("a"))),
        KestrelASTSet("a", KestrelASTAdd(KestrelASTVar("a"), KestrelASTVar("b"))),
        KestrelASTSet("b", KestrelASTAdd(KestrelASTVar("b"), KestrelASTAdd(KestrelASTVar("a"), KestrelASTVar("b")))),
        KestrelASTLet("c", KestrelASTVar("b")),
    ))


def describe_operand(ref: int, frame: KestrelFunctionFrame) -> str:
    """Describe an operand reference using local names and constant values."""
    if is_constant_ref(ref):
        index = decode_constant(ref)
        if index < len(frame.constants):
            return f"{format_operand(ref)} ({frame.constants[index].describe()})"

        return format_operand(ref)

    return f"{format_operand(ref)} ({frame.register_name(ref)})"


def annotate_instruction(instr: Instruction, frame: KestrelFunctionFrame) -> str:
    """Add annotation to instruction showing what it does."""
    args = instr.args
    if instr.opcode == Opcode.MOVE:
        return f"  ; {describe_operand(args[0], frame)} <- {describe_operand(args[1], frame)}"

    if instr.opcode == Opcode.LOAD_CONSTANT:
        return f"  ; {describe_operand(args[0], frame)} <- {describe_operand(args[1], frame)}"

    if instr.opcode == Opcode.ADD:
        return (
            f"  ; {describe_operand(args[0], frame)} <- "
            f"{describe_operand(args[1], frame)} + {describe_operand(args[2], frame)}"
        )

    return ""


def disassemble(frame: KestrelFunctionFrame) -> List[str]:
    """Disassemble a frame with annotations."""
    output = []
    output.append('=' * 70)
    output.append(f"Instructions: {len(frame.instructions)}")
    output.append(f"Registers: {frame.size} ({len(frame.locals)} locals, {frame.temporary_count} temporaries)")
    output.append(f"Constants: {len(frame.constants)}")
    output.append('=' * 70)

    for i, instr in enumerate(frame.instructions):
        output.append(f"{i:6}: {str(instr):24}{annotate_instruction(instr, frame)}")

    return output


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Step the Kestrel VM through a demo program",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--steps', '-n', type=int, default=None,
                        help='Maximum number of instructions to execute (default: run to halt)')
    parser.add_argument('--compact', '-c', action='store_true',
                        help='Print one line per step instead of the full VM state')

    args = parser.parse_args()

    kestrel = Kestrel()
    program = build_demo_program()
    print(f"Program: {program.describe()}")

    try:
        frame = kestrel.compile(program)

    except KestrelError as e:
        print(f"Error compiling: {e}", file=sys.stderr)
        return 1

    print('\n'.join(disassemble(frame)))

    vm = kestrel.create_vm(frame)
    if args.compact:
        vm.set_step_watcher(KestrelStdoutStepWatcher())

    else:
        print(vm.describe_state())

    executed = 0
    try:
        while args.steps is None or executed < args.steps:
            if not vm.step():
                break

            executed += 1
            if not args.compact:
                print()
                print(vm.describe_state())

    except KestrelError as e:
        print(f"Error at step {executed}: {e}", file=sys.stderr)
        return 1

    print(f"\nExecuted {executed} instructions, state: {vm.state.value}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
