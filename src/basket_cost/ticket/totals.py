"""Sanity check of parsed lines against the printed receipt total."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .models import Ticket
from .parser import parse_price

RE_TOTAL_NEXT_LINE = re.compile(r"TOTAL \(€\)\s*[\n\r]+([\d,]+)")
RE_TOTAL_INLINE = re.compile(r"TOTAL \(€\)\s+([\d,]+)")

TOLERANCE = 0.05


@dataclass(frozen=True)
class TotalCheck:
    declared: float
    computed: float
    lines: int

    @property
    def diff(self) -> float:
        return abs(self.declared - self.computed)

    @property
    def ok(self) -> bool:
        return self.diff <= TOLERANCE


def declared_total(text: str) -> Optional[float]:
    m = RE_TOTAL_NEXT_LINE.search(text) or RE_TOTAL_INLINE.search(text)
    if not m:
        return None
    try:
        return parse_price(m.group(1))
    except ValueError:
        return None


def computed_total(ticket: Ticket) -> float:
    # weight lines carry the per-kg price, so their contribution is approximate
    return sum(line.unit_price * line.quantity for line in ticket.lines)


def check_total(text: str, ticket: Ticket) -> Optional[TotalCheck]:
    """Compare the printed total with the parsed lines; None when nothing is printed."""
    declared = declared_total(text)
    if declared is None:
        return None
    return TotalCheck(declared=declared, computed=computed_total(ticket), lines=len(ticket.lines))
