from enum import Enum
from typing import Iterable


def in_clause(column: str, values: Iterable[str] | type[Enum]) -> str:
    """Render ``column IN ('A', 'B')`` for a check constraint."""
    members = [value.value if isinstance(value, Enum) else str(value) for value in values]
    quoted = ", ".join(f"'{member}'" for member in members)
    return f"{column} IN ({quoted})"
