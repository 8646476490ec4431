"""Kestrel Compiler - the entry point for turning an AST into an executable function frame."""

import logging

from kestrel.kestrel_ast import KestrelASTNode
from kestrel.kestrel_codegen import KestrelCodeGen
from kestrel.kestrel_frame import KestrelFunctionFrame
from kestrel.kestrel_frame_validator import validate_frame


class KestrelCompiler:
    """
    Compiler pass manager.

    There is a single code generation pass; the optional validation pass checks the
    generated frame against the invariants the VM relies on.
    """

    def __init__(self, validate: bool = True) -> None:
        """
        Initialize compiler.

        Args:
            validate: Validate every generated frame before returning it
        """
        self.validate = validate
        self.codegen = KestrelCodeGen()
        self._logger = logging.getLogger("KestrelCompiler")

    def compile(self, node: KestrelASTNode) -> KestrelFunctionFrame:
        """
        Compile an AST into a function frame.

        Args:
            node: Root of the tree to compile

        Returns:
            Compiled function frame ready for execution

        Raises:
            KestrelCompileError: If the tree is malformed
        """
        self._logger.debug("compiling %s", node.describe())
        frame = self.codegen.generate(node)

        if self.validate:
            validate_frame(frame)

        return frame
