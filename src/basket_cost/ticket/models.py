from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Tuple


@dataclass(frozen=True)
class TicketLine:
    """One purchased product line.

    For weight products `unit_price` is the price per kg and `quantity` is 1.
    """

    name: str          # as printed on the receipt (uppercase)
    unit_price: float  # euros
    quantity: int = 1


@dataclass(frozen=True)
class Ticket:
    store: str
    date: date
    invoice_number: str
    lines: Tuple[TicketLine, ...] = ()
