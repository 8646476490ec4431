"""Kestrel Value hierarchy - immutable runtime value types held in registers and constant pools."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


class KestrelValue(ABC):
    """
    Abstract base class for all Kestrel values.

    All Kestrel values are immutable.  Values of different types never compare equal.
    """

    @abstractmethod
    def to_python(self) -> Any:
        """Convert to Python value for operations."""

    @abstractmethod
    def type_name(self) -> str:
        """Return Kestrel type name for error messages."""

    @abstractmethod
    def describe(self) -> str:
        """Describe the value."""

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class KestrelNumber(KestrelValue):
    """Represents numeric values (always stored as floats)."""
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, 'value', float(self.value))

    def to_python(self) -> float:
        return self.value

    def type_name(self) -> str:
        return "number"

    def describe(self) -> str:
        if self.value.is_integer():
            return str(int(self.value))

        return str(self.value)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, KestrelNumber):
            return False

        return self.value == other.value

    def __hash__(self) -> int:
        return hash(("number", self.value))


@dataclass(frozen=True)
class KestrelBoolean(KestrelValue):
    """Represents boolean values."""
    value: bool

    def to_python(self) -> bool:
        return self.value

    def type_name(self) -> str:
        return "boolean"

    def describe(self) -> str:
        return "true" if self.value else "false"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, KestrelBoolean):
            return False

        return self.value == other.value

    def __hash__(self) -> int:
        return hash(("boolean", self.value))


@dataclass(frozen=True)
class KestrelNil(KestrelValue):
    """Represents the absence of a value.  Every register starts out holding nil."""

    def to_python(self) -> None:
        return None

    def type_name(self) -> str:
        return "nil"

    def describe(self) -> str:
        return "nil"

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, KestrelNil)

    def __hash__(self) -> int:
        return hash("nil")


# Module-level singleton - there is only one nil value.
Kestrel_NIL = KestrelNil()


def make_number(value: float) -> KestrelNumber:
    """Construct a number value."""
    return KestrelNumber(float(value))


def make_boolean(value: bool) -> KestrelBoolean:
    """Construct a boolean value."""
    return KestrelBoolean(bool(value))


def nil_value() -> KestrelNil:
    """Return the nil value."""
    return Kestrel_NIL


def values_equal(a: KestrelValue, b: KestrelValue) -> bool:
    """
    Structural, tag-aware equality.

    Values of different types are always unequal, so a number is never equal to a
    boolean even where Python would consider 1.0 == True.
    """
    return a == b


def display(value: KestrelValue) -> str:
    """Return the display text for a value."""
    return value.describe()
