"""
Canonical record types shared by the calculations and the pipeline.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, NamedTuple, Union


Period = Union[str, date]


@dataclass(frozen=True)
class ReturnRecord:
    """One monthly return observation for an instrument."""
    instrument: str
    period: Period
    value: float


class GroupKey(NamedTuple):
    """Composite key for one instrument within one calendar year."""
    instrument: str
    year: int


@dataclass(frozen=True)
class ResultRow:
    """Annual statistics for one (instrument, year) group."""
    instrument: str
    year: int
    highest_return: float
    max_drawup: float

    def as_dict(self) -> Dict[str, Any]:
        """Row in the column naming used by the CSV outputs."""
        return {
            'ticker': self.instrument,
            'year': self.year,
            'highest_return': self.highest_return,
            'max_drawup': self.max_drawup,
        }
