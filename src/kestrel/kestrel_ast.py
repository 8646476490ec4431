"""Kestrel AST node hierarchy.

AST nodes are built programmatically by callers (there is no source text parser).
They are pure descriptions: immutable, carrying no compilation state, so one tree
may be compiled any number of times.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import FrozenSet, Tuple

from kestrel.kestrel_value import KestrelValue


@dataclass(frozen=True)
class KestrelASTNode(ABC):
    """Abstract base class for all Kestrel AST nodes."""

    @abstractmethod
    def describe(self) -> str:
        """Render the node as display text."""

    def assigned_names(self) -> FrozenSet[str]:
        """Return the names of existing variables this subtree assigns with Set."""
        return frozenset()

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class KestrelASTConstant(KestrelASTNode):
    """A literal value."""
    value: KestrelValue

    def describe(self) -> str:
        return self.value.describe()


@dataclass(frozen=True)
class KestrelASTAdd(KestrelASTNode):
    """Numeric addition of two subexpressions."""
    left: KestrelASTNode
    right: KestrelASTNode

    def describe(self) -> str:
        return f"({self.left.describe()} + {self.right.describe()})"

    def assigned_names(self) -> FrozenSet[str]:
        return self.left.assigned_names() | self.right.assigned_names()


@dataclass(frozen=True)
class KestrelASTLet(KestrelASTNode):
    """Declare a new local variable and initialise it."""
    name: str
    value: KestrelASTNode

    def describe(self) -> str:
        return f"let {self.name} = {self.value.describe()}"

    def assigned_names(self) -> FrozenSet[str]:
        return self.value.assigned_names()


@dataclass(frozen=True)
class KestrelASTVar(KestrelASTNode):
    """Reference to a declared local variable."""
    name: str

    def describe(self) -> str:
        return self.name


@dataclass(frozen=True)
class KestrelASTSet(KestrelASTNode):
    """Assign a new value to an existing local variable."""
    name: str
    value: KestrelASTNode

    def describe(self) -> str:
        return f"{self.name} = {self.value.describe()}"

    def assigned_names(self) -> FrozenSet[str]:
        return self.value.assigned_names() | {self.name}


@dataclass(frozen=True)
class KestrelASTBlock(KestrelASTNode):
    """A sequence of expressions; its value is the value of the last one."""
    body: Tuple[KestrelASTNode, ...]

    def __post_init__(self) -> None:
        # Accept any sequence but store a tuple so the node stays immutable
        object.__setattr__(self, 'body', tuple(self.body))

    def describe(self) -> str:
        return "{ " + "; ".join(expr.describe() for expr in self.body) + " }"

    def assigned_names(self) -> FrozenSet[str]:
        names: FrozenSet[str] = frozenset()
        for expr in self.body:
            names = names | expr.assigned_names()

        return names


def is_leaf(node: KestrelASTNode) -> bool:
    """Return True for nodes that already live somewhere and need no instructions to read."""
    return isinstance(node, (KestrelASTConstant, KestrelASTVar))
