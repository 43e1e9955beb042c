import logging
from collections.abc import Mapping
from typing import Any, Dict, List

import urllib3
from snaptrade_client import SnapTrade
from snaptrade_client.exceptions import ApiException
from snaptrade_client.schemas import Unset

from config import Settings
from errors import AggregatorError, PositionParseError
from schemas import Account, Position


logger = logging.getLogger(__name__)


def _to_dict(obj: Any) -> Dict[str, Any]:
    """Convert a SnapTrade response object to a plain dict"""
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "to_dict"):
        result = obj.to_dict()
        return dict(result) if isinstance(result, dict) else {}
    return {}


def _is_missing(value: Any) -> bool:
    """True for None, Unset and SDK-wrapped JSON nulls"""
    if value is None or isinstance(value, Unset):
        return True
    is_none = getattr(value, "is_none_oapg", None)
    return bool(is_none and is_none())


def _body(response: Any) -> Any:
    body = getattr(response, "body", None)
    if _is_missing(body):
        return None
    return body


def _optional_str(value: Any):
    if _is_missing(value) or value == "":
        return None
    return str(value)


def parse_position(index: int, raw: Any) -> Position:
    """
    Parse one SnapTrade position record

    Args:
        index: Position index, used in error messages
        raw: Record with nested symbol.symbol.symbol, units and price

    Returns:
        Position
    """
    record = _to_dict(raw)

    # symbol is nested twice: position -> PositionSymbol -> UniversalSymbol -> ticker
    symbol = record.get("symbol")
    for _ in range(2):
        symbol = _to_dict(symbol).get("symbol") if not _is_missing(symbol) else None
    if not symbol or not isinstance(symbol, str):
        raise PositionParseError(index, "missing symbol.symbol.symbol")

    values = {}
    for field in ("units", "price"):
        value = record.get(field)
        if _is_missing(value):
            raise PositionParseError(index, f"{symbol} has no {field}")
        try:
            values[field] = float(value)
        except (TypeError, ValueError) as e:
            raise PositionParseError(index, f"{symbol} has non-numeric {field} {value!r}") from e

    return Position(symbol=symbol, units=values["units"], price=values["price"])


class AggregatorClient:
    """Thin wrapper over the SnapTrade SDK returning project models"""

    def __init__(self, client: SnapTrade):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "AggregatorClient":
        settings.require("client_id", "consumer_key")
        return cls(SnapTrade(
            consumer_key=settings.consumer_key,
            client_id=settings.client_id,
        ))

    def _call(self, operation: str, func, **kwargs) -> Any:
        logger.debug(f"SnapTrade {operation} request")
        try:
            response = func(**kwargs)
        except ApiException as e:
            status = getattr(e, "status", None)
            reason = getattr(e, "reason", None) or str(e)
            raise AggregatorError(operation, f"HTTP {status}: {reason}") from e
        except urllib3.exceptions.HTTPError as e:
            raise AggregatorError(operation, f"network error: {e}") from e
        return _body(response)

    def register_user(self, user_id: str) -> str:
        body = self._call(
            "register_user",
            self.client.authentication.register_snap_trade_user,
            user_id=user_id,
        )
        secret = _to_dict(body).get("userSecret")
        if not secret:
            raise AggregatorError("register_user", "response has no userSecret")
        return str(secret)

    def login_url(self, user_id: str, user_secret: str, broker: str,
                  immediate_redirect: bool = False) -> str:
        body = self._call(
            "login_url",
            self.client.authentication.login_snap_trade_user,
            user_id=user_id,
            user_secret=user_secret,
            broker=broker,
            immediate_redirect=immediate_redirect,
        )
        url = _to_dict(body).get("redirectURI")
        if not url:
            raise AggregatorError("login_url", "response has no redirectURI")
        return str(url)

    def list_accounts(self, user_id: str, user_secret: str) -> List[Account]:
        body = self._call(
            "list_accounts",
            self.client.account_information.list_user_accounts,
            user_id=user_id,
            user_secret=user_secret,
        )
        accounts = []
        for item in body or []:
            data = _to_dict(item)
            if _optional_str(data.get("id")) is None:
                raise AggregatorError("list_accounts", "account record has no id")
            accounts.append(Account(
                id=str(data["id"]),
                name=_optional_str(data.get("name")),
                number=_optional_str(data.get("number")),
                institution_name=_optional_str(data.get("institution_name")),
            ))
        return accounts

    def list_positions(self, user_id: str, user_secret: str, account_id: str) -> List[Position]:
        body = self._call(
            "list_positions",
            self.client.account_information.get_user_account_positions,
            user_id=user_id,
            user_secret=user_secret,
            account_id=account_id,
        )
        return [parse_position(i, raw) for i, raw in enumerate(body or [])]
