"""Shared fixtures and utilities for Kestrel tests."""

from typing import List, Set

import pytest

from kestrel import Kestrel, KestrelCompiler
from kestrel.kestrel_ast import (
    KestrelASTNode, KestrelASTAdd, KestrelASTBlock, KestrelASTConstant,
    KestrelASTLet, KestrelASTSet, KestrelASTVar
)
from kestrel.kestrel_frame import KestrelFunctionFrame
from kestrel.kestrel_value import make_number
from kestrel.kestrel_vm import KestrelVM


@pytest.fixture
def kestrel():
    """Create a fresh Kestrel instance for each test."""
    return Kestrel()


@pytest.fixture
def compiler():
    """Create a fresh compiler for each test."""
    return KestrelCompiler()


class KestrelTestHelpers:
    """Helper utilities for Kestrel testing."""

    @staticmethod
    def num(value: float) -> KestrelASTConstant:
        """Build a number constant node."""
        return KestrelASTConstant(make_number(value))

    @staticmethod
    def run_to_halt(frame: KestrelFunctionFrame) -> KestrelVM:
        """Step a new VM for frame until it halts and return it."""
        vm = KestrelVM(frame)
        while vm.step():
            pass

        return vm

    @staticmethod
    def register_of(frame: KestrelFunctionFrame, name: str) -> int:
        """Return the register index holding a named local."""
        return frame.locals.index(name)

    @staticmethod
    def code_text(frame: KestrelFunctionFrame) -> List[str]:
        """Return the frame's instructions as display strings."""
        return [str(instr) for instr in frame.instructions]

    @staticmethod
    def used_temporaries(frame: KestrelFunctionFrame) -> Set[int]:
        """Return the registers in the temporary region that the frame's code references."""
        return {
            arg
            for instr in frame.instructions
            for arg in instr.args
            if arg >= len(frame.locals)
        }

    @staticmethod
    def demo_program() -> KestrelASTNode:
        """Lets and assignments exercising moves, constants and temporaries."""
        num = KestrelTestHelpers.num
        return KestrelASTBlock((
            KestrelASTLet("a", KestrelASTAdd(num(2), num(2))),
            KestrelASTLet("b", KestrelASTAdd(num(3), KestrelASTVar("a"))),
            KestrelASTSet("a", KestrelASTAdd(KestrelASTVar("a"), KestrelASTVar("b"))),
            KestrelASTSet("b", KestrelASTAdd(KestrelASTVar("b"), KestrelASTAdd(KestrelASTVar("a"), KestrelASTVar("b")))),
            KestrelASTLet("c", KestrelASTVar("b")),
        ))


@pytest.fixture
def helpers():
    """Provide test helper utilities."""
    return KestrelTestHelpers
