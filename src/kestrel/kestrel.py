"""Main Kestrel class: compile expression trees and run them on the register VM."""

from kestrel.kestrel_ast import KestrelASTNode
from kestrel.kestrel_compiler import KestrelCompiler
from kestrel.kestrel_frame import KestrelFunctionFrame
from kestrel.kestrel_value import KestrelValue, Kestrel_NIL
from kestrel.kestrel_vm import KestrelVM


class Kestrel:
    """
    Kestrel compiler and register VM front end.

    Trees are compiled into immutable function frames; each call to create_vm gives
    an independent VM that callers step one instruction at a time.
    """

    def __init__(self, validate: bool = True):
        """
        Initialize Kestrel.

        Args:
            validate: Validate frames after compilation and before execution
        """
        self.validate = validate
        self._compiler = KestrelCompiler(validate=validate)

    def compile(self, node: KestrelASTNode) -> KestrelFunctionFrame:
        """
        Compile an AST into a function frame.

        Raises:
            KestrelCompileError: If the tree is malformed
        """
        return self._compiler.compile(node)

    def create_vm(self, frame: KestrelFunctionFrame) -> KestrelVM:
        """Create a fresh VM for a compiled frame."""
        return KestrelVM(frame, validate=self.validate)

    def evaluate(self, node: KestrelASTNode) -> KestrelValue:
        """
        Compile a tree, step the VM until it halts, and return the tree's value.

        Raises:
            KestrelCompileError: If the tree is malformed
            KestrelRuntimeError: If execution fails
        """
        vm = self.create_vm(self.compile(node))
        while vm.step():
            pass

        result = vm.result()
        if result is None:
            return Kestrel_NIL

        return result
