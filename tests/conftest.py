from __future__ import annotations

from pathlib import Path

import pytest

from basket_cost.store import PriceDatabase


@pytest.fixture
def db(tmp_path: Path) -> PriceDatabase:
    return PriceDatabase(str(tmp_path / "basket.sqlite3"))
