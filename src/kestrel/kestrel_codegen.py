"""
Kestrel code generator - lowers an AST directly into a register-machine function frame.

Generation is destination-driven: before generating a subexpression the caller records
the register its value should land in (the context's "destination").  Nodes that compute
a value write it straight into that register, while constants and variable references
simply report where their value already lives.  A value is only copied when it has to
be physically present in a particular register (let and set), which avoids redundant
moves.

Scratch space comes from temporary registers handed out with strict push/pop nesting.
The context records which temporaries emitted code actually references; when the frame
is built those are renumbered densely after the locals, so every register in the file
is used and no two simultaneously live temporaries share one.
"""

from contextlib import contextmanager, ExitStack
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Dict, Iterator, List, Optional, Set, Tuple

from kestrel.kestrel_ast import (
    KestrelASTNode, KestrelASTConstant, KestrelASTAdd, KestrelASTLet,
    KestrelASTVar, KestrelASTSet, KestrelASTBlock, is_leaf
)
from kestrel.kestrel_error import ErrorMessageBuilder, KestrelCompileError
from kestrel.kestrel_frame import KestrelFunctionFrame
from kestrel.kestrel_instruction import Instruction, Opcode
from kestrel.kestrel_operand import encode_constant, encode_register
from kestrel.kestrel_value import KestrelValue, values_equal


class KestrelLocationKind(Enum):
    """Where a value lives during code generation."""
    LOCAL = "local"
    TEMP = "temp"
    CONSTANT = "constant"


@dataclass(frozen=True)
class KestrelLocation:
    """
    A value location used while generating code.

    Temporaries are numbered from zero and only become register indices once the number
    of locals is known, when the frame is built.
    """
    kind: KestrelLocationKind
    index: int

    def __str__(self) -> str:
        return f"{self.kind.value}[{self.index}]"


@dataclass(frozen=True)
class PendingInstruction:
    """An instruction whose operands are still symbolic locations."""
    opcode: Opcode
    operands: Tuple[KestrelLocation, ...]


@dataclass
class KestrelCodeGenContext:
    """
    Code generation context - all state for one compilation.

    A fresh context is created for every call to KestrelCodeGen.generate, so nothing
    carries over between compilations.
    """
    constants: List[KestrelValue] = field(default_factory=list)
    instructions: List[PendingInstruction] = field(default_factory=list)
    locals: List[str] = field(default_factory=list)  # Reserved local names, in register order
    local_map: Dict[str, int] = field(default_factory=dict)  # Names visible to var/set
    temp_count: int = 0  # Temporaries currently reserved
    used_temps: Set[int] = field(default_factory=set)  # Temporaries referenced by emitted code
    destination: Optional[KestrelLocation] = None

    def add_constant(self, value: KestrelValue) -> KestrelLocation:
        """Return the location of value in the constant pool, appending it if absent."""
        for i, existing in enumerate(self.constants):
            if values_equal(existing, value):
                return KestrelLocation(KestrelLocationKind.CONSTANT, i)

        self.constants.append(value)
        return KestrelLocation(KestrelLocationKind.CONSTANT, len(self.constants) - 1)

    def reserve_local(self, name: str) -> KestrelLocation:
        """Reserve a register for a new local; the name is not visible until bound."""
        if name in self.locals:
            raise KestrelCompileError(
                message=f"Variable '{name}' is already defined",
                context=f"Declared locals: {', '.join(self.locals)}",
                suggestion=f"Use an assignment ({name} = ...) to change an existing variable"
            )

        self.locals.append(name)
        return KestrelLocation(KestrelLocationKind.LOCAL, len(self.locals) - 1)

    def bind_local(self, name: str, location: KestrelLocation) -> None:
        """Make a reserved local visible to later references."""
        self.local_map[name] = location.index

    def lookup_local(self, name: str) -> KestrelLocation:
        """Return the location of a declared local, failing if it is not defined."""
        index = self.local_map.get(name)
        if index is None:
            raise KestrelCompileError(
                message=f"Variable '{name}' is not defined",
                context=f"Declared locals: {', '.join(self.local_map) or '(none)'}",
                suggestion=ErrorMessageBuilder.undefined_variable_suggestion(name, list(self.local_map))
            )

        return KestrelLocation(KestrelLocationKind.LOCAL, index)

    @contextmanager
    def temporary(self) -> Iterator[KestrelLocation]:
        """Reserve a temporary for the extent of the with block, releasing it on every exit path."""
        location = KestrelLocation(KestrelLocationKind.TEMP, self.temp_count)
        self.temp_count += 1
        try:
            yield location

        finally:
            self.temp_count -= 1

    @contextmanager
    def target(self, destination: Optional[KestrelLocation]) -> Iterator[None]:
        """Set the destination register for the extent of the with block."""
        saved = self.destination
        self.destination = destination
        try:
            yield

        finally:
            self.destination = saved

    def emit(self, opcode: Opcode, *operands: KestrelLocation) -> None:
        """Emit an instruction, recording the temporaries it references."""
        for operand in operands:
            if operand.kind == KestrelLocationKind.TEMP:
                self.used_temps.add(operand.index)

        self.instructions.append(PendingInstruction(opcode, operands))


class KestrelCodeGen:
    """Generates a function frame from an AST."""

    def __init__(self) -> None:
        self._logger = logging.getLogger("KestrelCodeGen")

    def generate(self, node: KestrelASTNode) -> KestrelFunctionFrame:
        """
        Generate a function frame from an AST.

        Args:
            node: Root of the tree to compile

        Returns:
            Compiled function frame

        Raises:
            KestrelCompileError: If the tree is malformed
        """
        ctx = KestrelCodeGenContext()
        result = self._generate_expr(node, ctx)
        return self._build_frame(ctx, result)

    def _build_frame(self, ctx: KestrelCodeGenContext, result: KestrelLocation) -> KestrelFunctionFrame:
        """Resolve symbolic locations into operand references and package the frame."""
        local_count = len(ctx.locals)

        # Temporaries reserved but never written leave gaps; close them up in order
        temp_map = {temp: i for i, temp in enumerate(sorted(ctx.used_temps))}
        instructions = tuple(
            Instruction(
                pending.opcode,
                tuple(self._resolve(operand, local_count, temp_map) for operand in pending.operands)
            )
            for pending in ctx.instructions
        )

        frame = KestrelFunctionFrame(
            in_count=0,
            out_count=0,
            size=local_count + len(temp_map),
            constants=tuple(ctx.constants),
            locals=tuple(ctx.locals),
            instructions=instructions,
            result=self._resolve(result, local_count, temp_map)
        )
        self._logger.debug(
            "generated %d instructions, %d constants, %d locals, %d temporaries",
            len(instructions), len(ctx.constants), local_count, len(temp_map)
        )
        return frame

    def _resolve(self, location: KestrelLocation, local_count: int, temp_map: Dict[int, int]) -> int:
        """Convert a location into an operand reference."""
        if location.kind == KestrelLocationKind.LOCAL:
            return encode_register(location.index)

        if location.kind == KestrelLocationKind.TEMP:
            return encode_register(local_count + temp_map[location.index])

        if location.kind == KestrelLocationKind.CONSTANT:
            return encode_constant(location.index)

        raise KestrelCompileError(
            message=f"Unknown location kind {location.kind} in instruction operands",
            expected="local, temp or constant"
        )

    def _generate_expr(self, node: KestrelASTNode, ctx: KestrelCodeGenContext) -> KestrelLocation:
        """Generate code for a node and return the location holding its value."""
        if isinstance(node, KestrelASTConstant):
            return self._generate_constant(node, ctx)

        if isinstance(node, KestrelASTAdd):
            return self._generate_add(node, ctx)

        if isinstance(node, KestrelASTLet):
            return self._generate_let(node, ctx)

        if isinstance(node, KestrelASTVar):
            return self._generate_var(node, ctx)

        if isinstance(node, KestrelASTSet):
            return self._generate_set(node, ctx)

        if isinstance(node, KestrelASTBlock):
            return self._generate_block(node, ctx)

        raise KestrelCompileError(
            message=f"Unknown node type: {type(node).__name__}",
            expected="Constant, Add, Let, Var, Set or Block"
        )

    def _materialize(self, location: KestrelLocation, destination: KestrelLocation, ctx: KestrelCodeGenContext) -> None:
        """Make sure the value at location is present in the destination register."""
        if location.kind == KestrelLocationKind.CONSTANT:
            ctx.emit(Opcode.LOAD_CONSTANT, destination, location)
            return

        if location != destination:
            ctx.emit(Opcode.MOVE, destination, location)

    def _generate_constant(self, node: KestrelASTConstant, ctx: KestrelCodeGenContext) -> KestrelLocation:
        """Generate code for a constant: no instructions, just its pool slot."""
        return ctx.add_constant(node.value)

    def _generate_var(self, node: KestrelASTVar, ctx: KestrelCodeGenContext) -> KestrelLocation:
        """Generate code for a variable reference: no instructions, just its register."""
        return ctx.lookup_local(node.name)

    def _generate_add(self, node: KestrelASTAdd, ctx: KestrelCodeGenContext) -> KestrelLocation:
        """Generate code for an addition into the current destination."""
        destination = ctx.destination
        if destination is None:
            # Nobody asked for the value anywhere in particular, so it gets a temporary
            with ctx.temporary() as result:
                with ctx.target(result):
                    return self._generate_add(node, ctx)

        with ExitStack() as scratch:
            left_temp: Optional[KestrelLocation] = None
            if is_leaf(node.left):
                left = self._generate_expr(node.left, ctx)

            else:
                left_temp = scratch.enter_context(ctx.temporary())
                with ctx.target(left_temp):
                    left = self._generate_expr(node.left, ctx)

                # A let, set or block ending in a leaf leaves its value elsewhere
                if left != left_temp:
                    scratch.close()
                    left_temp = None

            # The right operand must not overwrite a variable the left operand still needs
            if left.kind == KestrelLocationKind.LOCAL and ctx.locals[left.index] in node.right.assigned_names():
                if left_temp is None:
                    left_temp = scratch.enter_context(ctx.temporary())

                ctx.emit(Opcode.MOVE, left_temp, left)
                left = left_temp

            right_destination = destination
            if left == destination and not is_leaf(node.right):
                right_destination = scratch.enter_context(ctx.temporary())

            with ctx.target(right_destination):
                right = self._generate_expr(node.right, ctx)

            ctx.emit(Opcode.ADD, destination, left, right)

        return destination

    def _generate_let(self, node: KestrelASTLet, ctx: KestrelCodeGenContext) -> KestrelLocation:
        """Generate code for a let binding."""
        local = ctx.reserve_local(node.name)
        with ctx.target(local):
            value = self._generate_expr(node.value, ctx)
            self._materialize(value, local, ctx)

        ctx.bind_local(node.name, local)
        return local

    def _generate_set(self, node: KestrelASTSet, ctx: KestrelCodeGenContext) -> KestrelLocation:
        """Generate code for an assignment to an existing local."""
        local = ctx.lookup_local(node.name)
        with ctx.target(local):
            value = self._generate_expr(node.value, ctx)
            self._materialize(value, local, ctx)

        return local

    def _generate_block(self, node: KestrelASTBlock, ctx: KestrelCodeGenContext) -> KestrelLocation:
        """Generate code for a block; intermediate results are discarded."""
        if not node.body:
            raise KestrelCompileError(
                message="Empty block",
                expected="At least one expression in the block body"
            )

        with ctx.target(None):
            for expr in node.body[:-1]:
                self._generate_expr(expr, ctx)

        return self._generate_expr(node.body[-1], ctx)
