"""Read-only projection of a logged run."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Run:
    run_id: int
    username: str
    date: str
    miles: float
    route: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Run":
        return cls(
            run_id=row["run_id"],
            username=row["username"],
            date=row["date"],
            miles=float(row["miles"] or 0),
            route=row["route"] or "",
        )
