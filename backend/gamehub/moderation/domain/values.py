"""Tagged field values carried by corrections and proposed game records.

A proposed change can hold text, a number, a flag, a list of strings, or an
explicit instruction to clear the field. ``None`` at a call site always means
"not provided"; clearing is only ever expressed as ``FieldValue.clear()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class ValueKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    FLAG = "flag"
    LIST = "list"
    CLEAR = "clear"


@dataclass(frozen=True, slots=True)
class FieldValue:
    kind: ValueKind
    value: str | int | float | bool | tuple[str, ...] | None = None

    @classmethod
    def text(cls, value: str) -> "FieldValue":
        return cls(ValueKind.TEXT, value)

    @classmethod
    def number(cls, value: int | float) -> "FieldValue":
        return cls(ValueKind.NUMBER, value)

    @classmethod
    def flag(cls, value: bool) -> "FieldValue":
        return cls(ValueKind.FLAG, bool(value))

    @classmethod
    def items(cls, values: list[str] | tuple[str, ...]) -> "FieldValue":
        return cls(ValueKind.LIST, tuple(values))

    @classmethod
    def clear(cls) -> "FieldValue":
        return cls(ValueKind.CLEAR, None)

    @property
    def is_clear(self) -> bool:
        return self.kind is ValueKind.CLEAR

    @classmethod
    def from_raw(cls, raw: Any) -> "FieldValue":
        """Build a value from decoded JSON.

        ``None``, empty strings and empty lists are all clears, matching how the
        game record treats them when a decision is applied.
        """
        if raw is None:
            return cls.clear()
        if isinstance(raw, FieldValue):
            return raw
        if isinstance(raw, bool):
            return cls.flag(raw)
        if isinstance(raw, (int, float)):
            return cls.number(raw)
        if isinstance(raw, str):
            return cls.clear() if raw == "" else cls.text(raw)
        if isinstance(raw, (list, tuple)):
            if not raw:
                return cls.clear()
            if not all(isinstance(item, str) for item in raw):
                raise ValueError("list_values_must_be_strings")
            return cls.items(list(raw))
        raise ValueError(f"unsupported_value_type:{type(raw).__name__}")

    def to_raw(self) -> str | int | float | bool | list[str] | None:
        if self.kind is ValueKind.LIST:
            return list(self.value or ())  # type: ignore[arg-type]
        return self.value  # type: ignore[return-value]

    def to_json(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "value": self.to_raw()}

    @classmethod
    def from_json(cls, data: Mapping[str, Any] | None) -> "FieldValue | None":
        if data is None:
            return None
        kind = ValueKind(data["kind"])
        if kind is ValueKind.CLEAR:
            return cls.clear()
        if kind is ValueKind.LIST:
            return cls.items(list(data.get("value") or ()))
        return cls(kind, data.get("value"))


def optional_json(value: FieldValue | None) -> dict[str, Any] | None:
    return value.to_json() if value is not None else None
