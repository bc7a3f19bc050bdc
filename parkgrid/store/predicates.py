"""Row predicates for conditional updates.

Predicates evaluate against an in-memory row (``matches``) and render as
PostgREST filters (``to_filter`` / ``to_params``), so the same claim check runs
unchanged on every store backend.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from pydantic_core import to_jsonable_python

_RESERVED = set(',.:()" ')


def _quote(text: str) -> str:
    """Quote a filter value when it contains reserved characters."""
    if any(ch in _RESERVED for ch in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


class Predicate(ABC):
    """Boolean condition on a single store row."""

    @abstractmethod
    def matches(self, row: dict[str, Any]) -> bool:
        """Evaluate against a row.

        Args:
            row: Store row

        Returns:
            True if the row satisfies the condition
        """
        pass

    @abstractmethod
    def to_filter(self) -> str:
        """Render as a PostgREST logical-tree term (e.g. ``lease_holder.is.null``)."""
        pass

    @abstractmethod
    def to_params(self) -> list[tuple[str, str]]:
        """Render as top-level PostgREST query parameters."""
        pass

    def __and__(self, other: "Predicate") -> "And":
        return And(self, other)

    def __or__(self, other: "Predicate") -> "Or":
        return Or(self, other)


class _ColumnPredicate(Predicate):
    """Comparison between one column and a value."""

    op = ""

    def __init__(self, column: str, value: Any = None):
        self.column = column
        self.value = value

    def _operand(self, quoted: bool) -> str:
        text = str(to_jsonable_python(self.value))
        return _quote(text) if quoted else text

    def to_filter(self) -> str:
        return f"{self.column}.{self.op}.{self._operand(quoted=True)}"

    def to_params(self) -> list[tuple[str, str]]:
        return [(self.column, f"{self.op}.{self._operand(quoted=False)}")]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.column!r}, {self.value!r})"


class IsNull(_ColumnPredicate):
    """Column is null."""

    op = "is"

    def __init__(self, column: str):
        super().__init__(column)

    def _operand(self, quoted: bool) -> str:
        return "null"

    def matches(self, row: dict[str, Any]) -> bool:
        return row.get(self.column) is None

    def __repr__(self) -> str:
        return f"IsNull({self.column!r})"


class Eq(_ColumnPredicate):
    """Column equals a value. A null column never matches."""

    op = "eq"

    def matches(self, row: dict[str, Any]) -> bool:
        current = row.get(self.column)
        return current is not None and current == self.value


class Lt(_ColumnPredicate):
    """Column is strictly less than a value. A null column never matches."""

    op = "lt"

    def __init__(self, column: str, value: datetime | int | float):
        super().__init__(column, value)

    def matches(self, row: dict[str, Any]) -> bool:
        current = row.get(self.column)
        return current is not None and current < self.value


class And(Predicate):
    """All terms hold."""

    def __init__(self, *terms: Predicate):
        if not terms:
            raise ValueError("And() needs at least one term")
        self.terms = terms

    def matches(self, row: dict[str, Any]) -> bool:
        return all(term.matches(row) for term in self.terms)

    def to_filter(self) -> str:
        return f"and({','.join(term.to_filter() for term in self.terms)})"

    def to_params(self) -> list[tuple[str, str]]:
        # Top-level PostgREST params are implicitly ANDed
        params = []
        for term in self.terms:
            params.extend(term.to_params())
        return params

    def __repr__(self) -> str:
        return f"And{self.terms!r}"


class Or(Predicate):
    """At least one term holds."""

    def __init__(self, *terms: Predicate):
        if not terms:
            raise ValueError("Or() needs at least one term")
        self.terms = terms

    def matches(self, row: dict[str, Any]) -> bool:
        return any(term.matches(row) for term in self.terms)

    def to_filter(self) -> str:
        return f"or({','.join(term.to_filter() for term in self.terms)})"

    def to_params(self) -> list[tuple[str, str]]:
        return [("or", f"({','.join(term.to_filter() for term in self.terms)})")]

    def __repr__(self) -> str:
        return f"Or{self.terms!r}"
