from __future__ import annotations

import pytest

from basket_cost.ticket.parser import MercadonaParser
from basket_cost.ticket.totals import check_total, declared_total

from receipts import MULTI_LINE_RECEIPT


def test_declared_total_next_line_and_inline() -> None:
    assert declared_total("TOTAL (€)\n5,62\n") == pytest.approx(5.62)
    assert declared_total("TOTAL (€)   4,57\n") == pytest.approx(4.57)
    assert declared_total("no total") is None


def test_check_total_flags_differences() -> None:
    ticket = MercadonaParser().parse(MULTI_LINE_RECEIPT)
    check = check_total(MULTI_LINE_RECEIPT, ticket)
    assert check is not None
    # 0,89 + 2 x 1,20 + 1,99 (per kg) + 0,60
    assert check.computed == pytest.approx(5.88)
    assert check.declared == pytest.approx(5.62)
    assert check.lines == 4
    assert not check.ok


def test_check_total_within_tolerance() -> None:
    text = "01/02/2024\nDescripció\n1\nPA\n0,60\n2\nOUS\n1,05\n2,10\nTOTAL (€)\n2,70\n"
    ticket = MercadonaParser().parse(text)
    check = check_total(text, ticket)
    assert check is not None and check.ok
