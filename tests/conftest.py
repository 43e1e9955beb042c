"""
Shared fixtures: settings, SnapTrade/Sheets doubles and an in-memory
Google Sheets service that understands the A1 ranges the sync uses.
"""
import re
from typing import Any, Dict, List, Tuple
from unittest.mock import MagicMock

import pytest

from aggregator import AggregatorClient
from config import Settings
from schemas import Account, Position
from sheets import SheetsClient


A1_RANGE = re.compile(
    r"^(?P<tab>[^!]+)!(?P<c1>[A-Z]+)(?P<r1>\d*)(?::(?P<c2>[A-Z]+)(?P<r2>\d*))?$"
)
MAX_ROWS = 1000


def _col_index(letters: str) -> int:
    index = 0
    for ch in letters:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def parse_a1(range_: str) -> Tuple[str, int, int, int, int]:
    """Return (tab, first_row, first_col, last_row, last_col), zero based, inclusive"""
    m = A1_RANGE.match(range_)
    assert m, f"unsupported range {range_}"
    r1 = int(m.group("r1") or 1) - 1
    c1 = _col_index(m.group("c1"))
    if m.group("c2"):
        c2 = _col_index(m.group("c2"))
        r2 = int(m.group("r2")) - 1 if m.group("r2") else MAX_ROWS
    else:
        c2, r2 = c1, r1
    return m.group("tab"), r1, c1, r2, c2


def _user_entered(value: Any) -> Any:
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() else number
    return value


class _Request:
    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


class FakeSheetsService:
    """Minimal stand-in for googleapiclient's spreadsheets().values() resource"""

    def __init__(self):
        self.cells: Dict[Tuple[str, int, int], Any] = {}
        self.calls: List[Tuple[str, str]] = []

    def spreadsheets(self):
        return self

    def values(self):
        return self

    def get(self, spreadsheetId, valueRenderOption=None, **kwargs):
        a1 = kwargs["range"]

        def run():
            self.calls.append(("get", a1))
            tab, r1, c1, r2, c2 = parse_a1(a1)
            rows = []
            for r in range(r1, r2 + 1):
                row = [self.cells.get((tab, r, c), "") for c in range(c1, c2 + 1)]
                while row and row[-1] == "":
                    row.pop()
                rows.append(row)
            while rows and not rows[-1]:
                rows.pop()
            return {"range": a1, "values": rows} if rows else {"range": a1}
        return _Request(run)

    def update(self, spreadsheetId, valueInputOption, body, **kwargs):
        a1 = kwargs["range"]

        def run():
            self.calls.append(("update", a1))
            tab, r1, c1, _, _ = parse_a1(a1)
            count = 0
            for i, row in enumerate(body["values"]):
                for j, value in enumerate(row):
                    self.cells[(tab, r1 + i, c1 + j)] = _user_entered(value)
                    count += 1
            return {"updatedRange": a1, "updatedCells": count}
        return _Request(run)

    def clear(self, spreadsheetId, body=None, **kwargs):
        a1 = kwargs["range"]

        def run():
            self.calls.append(("clear", a1))
            tab, r1, c1, r2, c2 = parse_a1(a1)
            for key in list(self.cells):
                k_tab, r, c = key
                if k_tab == tab and r1 <= r <= r2 and c1 <= c <= c2:
                    del self.cells[key]
            return {"clearedRange": a1}
        return _Request(run)

    def cell(self, tab: str, a1: str) -> Any:
        _, r, c, _, _ = parse_a1(f"{tab}!{a1}")
        return self.cells.get((tab, r, c))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        client_id="client-123",
        consumer_key="consumer-abc",
        user_id="user-1",
        user_secret="secret-xyz",
        sheet_id="sheet-42",
        sheet_tab="FidelityRaw",
        broker="FIDELITY",
    )


@pytest.fixture
def accounts() -> List[Account]:
    return [
        Account(id="acc-1", name="Individual", number="X123"),
        Account(id="acc-2", name="Roth IRA", number="X456"),
    ]


@pytest.fixture
def positions() -> List[Position]:
    return [
        Position(symbol="AAPL", units=10, price=150.0),
        Position(symbol="VTI", units=2.5, price=220.4),
        Position(symbol="FXAIX", units=0.123, price=190.17),
    ]


@pytest.fixture
def aggregator(accounts, positions) -> MagicMock:
    client = MagicMock(spec=AggregatorClient)
    client.list_accounts.return_value = accounts
    client.list_positions.return_value = positions
    return client


@pytest.fixture
def mock_sheets() -> MagicMock:
    return MagicMock(spec=SheetsClient)


@pytest.fixture
def fake_service() -> FakeSheetsService:
    return FakeSheetsService()


@pytest.fixture
def sheets(fake_service) -> SheetsClient:
    return SheetsClient(fake_service, "sheet-42")
