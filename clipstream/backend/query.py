"""Backend-neutral row filters and select queries.

Filters evaluate against plain row dictionaries (used by the in-memory
backend and by client-side change-event filtering) and render to
PostgREST query parameters for the hosted data API.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

Row = dict[str, Any]


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    if any(char in text for char in ',()":'):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


class Filter(ABC):
    """A predicate over a single row."""

    @abstractmethod
    def matches(self, row: Row) -> bool:
        raise NotImplementedError

    @abstractmethod
    def render(self) -> str:
        """Render as a PostgREST logical-tree expression (``col.op.value``)."""

    def to_params(self) -> list[tuple[str, str]]:
        """Render as top-level PostgREST query parameters."""

        return [("and", f"({self.render()})")]


@dataclass(frozen=True, slots=True)
class Eq(Filter):
    column: str
    value: Any

    def matches(self, row: Row) -> bool:
        return row.get(self.column) == self.value

    def render(self) -> str:
        if self.value is None:
            return f"{self.column}.is.null"
        return f"{self.column}.eq.{_format_value(self.value)}"

    def to_params(self) -> list[tuple[str, str]]:
        if self.value is None:
            return [(self.column, "is.null")]
        return [(self.column, f"eq.{_format_value(self.value)}")]


@dataclass(frozen=True, slots=True)
class In(Filter):
    column: str
    values: tuple[Any, ...]

    def matches(self, row: Row) -> bool:
        return row.get(self.column) in self.values

    def _operand(self) -> str:
        return "(" + ",".join(_format_value(value) for value in self.values) + ")"

    def render(self) -> str:
        return f"{self.column}.in.{self._operand()}"

    def to_params(self) -> list[tuple[str, str]]:
        return [(self.column, f"in.{self._operand()}")]


@dataclass(frozen=True, slots=True)
class And(Filter):
    filters: tuple[Filter, ...]

    def matches(self, row: Row) -> bool:
        return all(item.matches(row) for item in self.filters)

    def render(self) -> str:
        return "and(" + ",".join(item.render() for item in self.filters) + ")"

    def to_params(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        for item in self.filters:
            params.extend(item.to_params())
        return params


@dataclass(frozen=True, slots=True)
class Or(Filter):
    filters: tuple[Filter, ...]

    def matches(self, row: Row) -> bool:
        return any(item.matches(row) for item in self.filters)

    def render(self) -> str:
        return "or(" + ",".join(item.render() for item in self.filters) + ")"

    def to_params(self) -> list[tuple[str, str]]:
        return [("or", "(" + ",".join(item.render() for item in self.filters) + ")")]


def eq(column: str, value: Any) -> Eq:
    return Eq(column, value)


def in_(column: str, values: Iterable[Any]) -> In:
    return In(column, tuple(values))


def and_(*filters: Filter) -> And:
    return And(tuple(filters))


def or_(*filters: Filter) -> Or:
    return Or(tuple(filters))


def _sort_key(value: Any) -> tuple[bool, Any]:
    return (value is None, value if value is not None else 0)


@dataclass(slots=True)
class Query:
    """A select against one table: filters, ordering and an optional limit."""

    table: str
    columns: str = "*"
    filters: list[Filter] = field(default_factory=list)
    ordering: list[tuple[str, bool]] = field(default_factory=list)
    limit_to: int | None = None

    def where(self, *filters: Filter) -> Query:
        self.filters.extend(filters)
        return self

    def order_by(self, column: str, *, desc: bool = False) -> Query:
        self.ordering.append((column, desc))
        return self

    def limit(self, count: int) -> Query:
        self.limit_to = count
        return self

    def matches(self, row: Row) -> bool:
        return all(item.matches(row) for item in self.filters)

    def apply(self, rows: Sequence[Row]) -> list[Row]:
        """Evaluate the query against an in-memory row collection."""

        selected = [dict(row) for row in rows if self.matches(row)]
        # Stable sorts applied from the least significant key upwards.
        for column, desc in reversed(self.ordering):
            selected.sort(key=lambda row: _sort_key(row.get(column)), reverse=desc)
        if self.limit_to is not None:
            selected = selected[: self.limit_to]
        return selected

    def to_params(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = [("select", self.columns)]
        for item in self.filters:
            params.extend(item.to_params())
        if self.ordering:
            rendered = ",".join(f"{column}.{'desc' if desc else 'asc'}" for column, desc in self.ordering)
            params.append(("order", rendered))
        if self.limit_to is not None:
            params.append(("limit", str(self.limit_to)))
        return params


__all__ = ["Row", "Filter", "Eq", "In", "And", "Or", "Query", "eq", "in_", "and_", "or_"]
