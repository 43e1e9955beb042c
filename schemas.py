from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel


class Account(BaseModel):
    """Brokerage account linked through SnapTrade"""
    id: str
    name: Optional[str] = None
    number: Optional[str] = None
    institution_name: Optional[str] = None


class Position(BaseModel):
    """Held quantity of one symbol with its current unit price"""
    symbol: str
    units: float
    price: float

    @property
    def market_value(self) -> float:
        return self.units * self.price

    def to_row(self) -> List[Any]:
        """Spreadsheet row: ticker, quantity, market value"""
        return [self.symbol, self.units, self.market_value]


class OperationResult(BaseModel):
    """Outcome of a CLI command"""
    command: str
    status: str
    message: Optional[str] = None
    count: int = 0
    as_of: Optional[datetime] = None
    account_id: Optional[str] = None
    user_secret: Optional[str] = None
    redirect_uri: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def error(cls, command: str, message: str) -> "OperationResult":
        return cls(command=command, status="error", message=message)
