from __future__ import annotations

from typing import BinaryIO, Optional


SINGLE_LINE_RECEIPT = """MERCADONA, S.A.   A-46103834
AV. DIAGONAL 100, 08019 BARCELONA
12/03/2024 18:45  OP: 120934
FACTURA SIMPLIFICADA: 2831-021-575287
Descripció   P. Unit   Import
1   LLET SEMI HACENDADO   0,89
3   AIGUA MINERAL 1,5L   0,45   1,35
1   PLATAN
0,870 kg   1,99 €/kg   1,73
1   PA DE VIDRE   0,60
TOTAL (€)   4,57
TARGETA BANCARIA   4,57
"""

MULTI_LINE_RECEIPT = """MERCADONA, S.A.
FACTURA SIMPLIFICADA: 1234-567-890123
05/01/2024 10:12
Descripció
P. Unit
Import
1
LLET SEMI
0,89
2
TONYINA
1,20
2,40
1
PLATAN
0,870 kg
1,99 €/kg
1,73
1
PA
0,60
TOTAL (€)
5,62
"""


class FakeExtractor:
    """Returns canned text regardless of the bytes it is given."""

    def __init__(self, text: str = SINGLE_LINE_RECEIPT, error: Optional[Exception] = None) -> None:
        self.text = text
        self.error = error
        self.calls = 0

    def extract(self, stream: BinaryIO, size: int) -> str:
        self.calls += 1
        stream.read(size)
        if self.error is not None:
            raise self.error
        return self.text
