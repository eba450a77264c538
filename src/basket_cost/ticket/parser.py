"""Mercadona receipt parser.

Receipts are printed in Catalan. Two physical text layouts reach the parser,
depending on how the PDF table cells were extracted:

Single-line layout, one row per product::

    Descripció   P. Unit   Import
    1   LECHE ENTERA HACENDADO 1L   0,89
    3   AGUA MINERAL 1,5L   0,45   1,35
    1   PECHUGA POLLO
    0,354 kg   6,99 €/kg   2,47
    TOTAL (€)   9,67

Multi-line layout, one cell per line::

    Descripció
    P. Unit
    Import
    1
    LECHE ENTERA HACENDADO 1L
    0,89
    1
    PECHUGA POLLO
    0,354 kg
    6,99 €/kg
    2,47

Both bodies are walked by a small state machine. Each layout has a pure step
function ``(state, line) -> (state, emitted line or None)`` so every
transition can be exercised on its own. A malformed product row resets the
machine and is dropped; only a missing purchase date fails the whole ticket.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Protocol, Tuple

from ..logging import get_logger
from .models import Ticket, TicketLine


LOG = get_logger("ticket-parser")

STORE_NAME = "Mercadona"

RE_DATE = re.compile(r"(\d{2}/\d{2}/\d{4})")
RE_INVOICE = re.compile(r"FACTURA SIMPLIFICADA:\s*(\S+)")
RE_FOOTER = re.compile(r"TOTAL\s*\(€\)")

# multi-line cells
RE_QTY = re.compile(r"^([1-9]\d*)$")
RE_PRICE = re.compile(r"^(\d+,\d{2})$")
RE_WEIGHT_KG = re.compile(r"^(\d+,\d+)\s*kg$")
RE_PRICE_PER_KG = re.compile(r"^(\d+,\d{2})\s*€/kg$")

# single-line rows
RE_COLUMN_HEADER_SINGLE = re.compile(r"Descripció\s+P\.\s*Unit\s+Import")
RE_UNIT_SINGLE = re.compile(r"^1\s{2,}(.+?)\s{2,}(\d+,\d{2})\s*$")
RE_UNIT_MULTI = re.compile(r"^([1-9]\d*)\s{2,}(.+?)\s{2,}(\d+,\d{2})\s{2,}\d+,\d{2}\s*$")
RE_WEIGHT_LINE_SINGLE = re.compile(r"^(\d+,\d+)\s*kg\s+(\d+,\d{2})\s*€/kg\s+\d+,\d{2}\s*$")
RE_TRAILING_PRICE = re.compile(r"\d+,\d{2}\s*$")

MULTI_LINE_BODY_MARKER = "Descripció"
HEADER_RESIDUE = frozenset({"Descripció", "P. Unit", "Import"})


class ReceiptFormatError(ValueError):
    pass


class Phase(enum.Enum):
    IDLE = "idle"                               # before the column header
    DONE = "done"                               # footer reached; terminal
    # multi-line layout
    QTY = "qty"
    NAME = "name"
    PRICE = "price"
    WEIGHT_PRICE_PER_KG = "weight-price-per-kg"
    TOTAL = "total"
    # single-line layout
    BODY = "body"
    WEIGHT = "weight"                           # name seen, weight row expected


@dataclass(frozen=True)
class BodyState:
    phase: Phase = Phase.IDLE
    qty: int = 0
    name: str = ""


Step = Callable[[BodyState, str], Tuple[BodyState, Optional[TicketLine]]]


def split_lines(text: str) -> List[str]:
    return text.replace("\r\n", "\n").split("\n")


def parse_price(value: str) -> float:
    """Convert a Spanish-locale amount ("1,99") to float."""
    return float(value.strip().replace(",", "."))


def extract_header(lines: Iterable[str]) -> Tuple[Optional[date], str]:
    """Return the first purchase date and the invoice number found in `lines`."""
    purchase_date: Optional[date] = None
    invoice = ""
    for line in lines:
        if purchase_date is None:
            m = RE_DATE.search(line)
            if m:
                try:
                    purchase_date = datetime.strptime(m.group(1), "%d/%m/%Y").date()
                except ValueError:
                    pass
        if not invoice:
            m = RE_INVOICE.search(line)
            if m:
                invoice = m.group(1)
        if purchase_date is not None and invoice:
            break
    return purchase_date, invoice


# ---------------------------------------------------------------------------
# multi-line layout
# ---------------------------------------------------------------------------
def step_multi_line(state: BodyState, line: str) -> Tuple[BodyState, Optional[TicketLine]]:
    trimmed = line.strip()
    if state.phase is Phase.DONE:
        return state, None
    if RE_FOOTER.search(trimmed):
        return BodyState(Phase.DONE), None
    if state.phase is Phase.IDLE:
        if trimmed == MULTI_LINE_BODY_MARKER:
            return BodyState(Phase.QTY), None
        return state, None
    if not trimmed:
        return state, None

    phase = state.phase
    if phase is Phase.QTY:
        m = RE_QTY.match(trimmed)
        if m:
            return BodyState(Phase.NAME, qty=int(m.group(1))), None
        # "P. Unit" / "Import" header cells and other noise
        return state, None

    if phase is Phase.NAME:
        if trimmed in HEADER_RESIDUE:
            return state, None
        if RE_PRICE.match(trimmed) or RE_QTY.match(trimmed):
            return BodyState(Phase.QTY), None
        return replace(state, phase=Phase.PRICE, name=trimmed), None

    if phase is Phase.PRICE:
        if RE_WEIGHT_KG.match(trimmed):
            return replace(state, phase=Phase.WEIGHT_PRICE_PER_KG), None
        m = RE_PRICE.match(trimmed)
        if m:
            item = TicketLine(name=state.name, unit_price=parse_price(m.group(1)), quantity=state.qty)
            # qty > 1 rows carry a line total after the unit price
            nxt = Phase.QTY if state.qty == 1 else Phase.TOTAL
            return BodyState(nxt), item
        return BodyState(Phase.QTY), None

    if phase is Phase.WEIGHT_PRICE_PER_KG:
        m = RE_PRICE_PER_KG.match(trimmed)
        if m:
            item = TicketLine(name=state.name, unit_price=parse_price(m.group(1)), quantity=1)
            return BodyState(Phase.TOTAL), item
        return BodyState(Phase.QTY), None

    if phase is Phase.TOTAL:
        if RE_PRICE.match(trimmed):
            return BodyState(Phase.QTY), None
        return step_multi_line(BodyState(Phase.QTY), line)

    LOG.debug(f"Multi-line step received foreign phase {phase}; resetting")
    return BodyState(Phase.QTY), None


# ---------------------------------------------------------------------------
# single-line layout
# ---------------------------------------------------------------------------
def step_single_line(state: BodyState, line: str) -> Tuple[BodyState, Optional[TicketLine]]:
    trimmed = line.strip()
    if state.phase is Phase.DONE:
        return state, None
    if RE_FOOTER.search(trimmed):
        return BodyState(Phase.DONE), None
    if RE_COLUMN_HEADER_SINGLE.search(trimmed):
        return BodyState(Phase.BODY), None
    if state.phase is Phase.IDLE or not trimmed:
        return state, None

    if state.phase is Phase.WEIGHT:
        m = RE_WEIGHT_LINE_SINGLE.match(trimmed)
        if m:
            item = TicketLine(name=state.name, unit_price=parse_price(m.group(2)), quantity=1)
            return BodyState(Phase.BODY), item
        # the pending weight product never got its weight row
        return step_single_line(BodyState(Phase.BODY), line)

    m = RE_UNIT_MULTI.match(trimmed)
    if m:
        name = m.group(2).strip()
        if name in HEADER_RESIDUE:
            return state, None
        return state, TicketLine(name=name, unit_price=parse_price(m.group(3)), quantity=int(m.group(1)))

    m = RE_UNIT_SINGLE.match(trimmed)
    if m:
        name = m.group(1).strip()
        if name in HEADER_RESIDUE:
            return state, None
        return state, TicketLine(name=name, unit_price=parse_price(m.group(2)), quantity=1)

    if trimmed.startswith("1 ") or trimmed.startswith("1\t"):
        rest = trimmed[1:].strip()
        if rest and rest not in HEADER_RESIDUE and not RE_TRAILING_PRICE.search(rest):
            return BodyState(Phase.WEIGHT, qty=1, name=rest), None

    return state, None


def run_body(lines: Iterable[str], step: Step) -> List[TicketLine]:
    state = BodyState()
    out: List[TicketLine] = []
    for line in lines:
        state, item = step(state, line)
        if item is not None:
            out.append(item)
        if state.phase is Phase.DONE:
            break
    return out


def uses_single_line_layout(lines: Iterable[str]) -> bool:
    return any(RE_COLUMN_HEADER_SINGLE.search(line) for line in lines)


class Parser(Protocol):
    def parse(self, text: str) -> Ticket:
        ...


class MercadonaParser:
    """Parse Mercadona (Catalonia) receipts into a Ticket."""

    def parse(self, text: str) -> Ticket:
        lines = split_lines(text)
        purchase_date, invoice = extract_header(lines)
        if purchase_date is None:
            raise ReceiptFormatError("could not find date in receipt")
        if not invoice:
            LOG.warning("Receipt has no invoice number; continuing with an empty one")

        if uses_single_line_layout(lines):
            layout, step = "single-line", step_single_line
        else:
            layout, step = "multi-line", step_multi_line
        items = run_body(lines, step)
        LOG.debug(f"Parsed {len(items)} line(s) from {layout} receipt {invoice or '<no invoice>'}")
        return Ticket(
            store=STORE_NAME,
            date=purchase_date,
            invoice_number=invoice,
            lines=tuple(items),
        )
