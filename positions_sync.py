import logging
from datetime import datetime
from typing import Any, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from aggregator import AggregatorClient
from config import Settings
from errors import AccountNotFoundError, ConfigError, NoAccountsError, SheetsError, SyncError
from schemas import Account, OperationResult, Position
from sheets import SheetsClient


logger = logging.getLogger(__name__)

COMMAND = "sync"
LAST_COLUMN = "Z"
TIMESTAMP_LABEL = "Last Updated"


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown timezone {name!r}") from e


def format_timestamp(now: datetime) -> str:
    """Format like en-US toLocaleString, e.g. 10/18/2026, 02:47 PM"""
    return f"{now.month}/{now.day}/{now.year}, {now.strftime('%I:%M %p')}"


def positions_to_rows(positions: List[Position]) -> List[List[Any]]:
    """
    Convert positions to spreadsheet rows

    Args:
        positions: Positions in upstream order

    Returns:
        One [ticker, quantity, market value] row per position, same order
    """
    return [position.to_row() for position in positions]


def select_account(accounts: List[Account], settings: Settings) -> Account:
    """
    Pick the account to sync

    Selection order: configured account id, then configured account name
    (case-insensitive), then the first account returned by SnapTrade.
    """
    if not accounts:
        raise NoAccountsError(settings.user_id)

    if settings.account_id:
        for account in accounts:
            if account.id == settings.account_id:
                return account
        raise AccountNotFoundError(f"id {settings.account_id}")

    if settings.account_name:
        wanted = settings.account_name.casefold()
        for account in accounts:
            if account.name and account.name.casefold() == wanted:
                return account
        raise AccountNotFoundError(f"name {settings.account_name}")

    return accounts[0]


def data_ranges(settings: Settings) -> tuple:
    """
    Ranges used by a sync as (clear range, first data cell)

    With preserve_header row 1 holds the "Last Updated" stamp and data starts
    at row 2, otherwise the whole tab is replaced from A1.
    """
    tab = settings.sheet_tab
    first_row = 2 if settings.preserve_header else 1
    return f"{tab}!A{first_row}:{LAST_COLUMN}", f"{tab}!A{first_row}"


def write_rows(sheets: SheetsClient, settings: Settings, rows: List[List[Any]], stamp: str) -> None:
    """
    Replace the data rows of the tab

    Clear always runs before the row update. The "Last Updated" stamp is
    written only after the rows.
    """
    clear_range, start_cell = data_ranges(settings)

    sheets.clear(clear_range)

    if rows:
        try:
            sheets.update(start_cell, rows)
        except SheetsError as e:
            raise SheetsError(
                "update", start_cell,
                f"{e.__cause__ or e}; {clear_range} was already cleared and is now empty",
            ) from e

    if settings.preserve_header:
        sheets.update(f"{settings.sheet_tab}!A1", [[TIMESTAMP_LABEL, stamp]])


def read_rows(settings: Settings, sheets: SheetsClient) -> List[List[Any]]:
    """Read back the three data columns written by the last sync"""
    first_row = 2 if settings.preserve_header else 1
    return sheets.read(f"{settings.sheet_tab}!A{first_row}:C")


def sync_positions(
    settings: Settings,
    aggregator: AggregatorClient,
    sheets: SheetsClient,
    now: Optional[datetime] = None,
) -> OperationResult:
    """
    Sync positions of the selected account into the spreadsheet tab

    Args:
        settings: Loaded settings
        aggregator: SnapTrade client
        sheets: Spreadsheet client
        now: Timestamp for the "Last Updated" cell, defaults to current time

    Returns:
        OperationResult with the number of rows written
    """
    try:
        settings.require("user_id", "user_secret")
        tz = resolve_timezone(settings.timezone)
        now = now.astimezone(tz) if now else datetime.now(tz)
        stamp = format_timestamp(now)

        # Fetch and transform everything before touching the sheet
        accounts = aggregator.list_accounts(settings.user_id, settings.user_secret)
        account = select_account(accounts, settings)
        logger.info(f"Using account {account.id} ({account.name or 'unnamed'}) of {len(accounts)}")

        positions = aggregator.list_positions(settings.user_id, settings.user_secret, account.id)
        rows = positions_to_rows(positions)
        if not rows:
            logger.warning(f"Account {account.id} has no positions; tab will be emptied")

        write_rows(sheets, settings, rows, stamp)

        logger.info(f"Synced {len(rows)} positions at {stamp}.")
        return OperationResult(
            command=COMMAND,
            status="success",
            count=len(rows),
            as_of=now,
            account_id=account.id,
        )

    except SyncError as e:
        logger.error(f"sync error: {e}")
        return OperationResult.error(COMMAND, str(e))
