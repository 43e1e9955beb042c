import logging
from typing import Any, List

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from config import Settings, load_service_account_info
from errors import SheetsError


logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
VALUE_INPUT_OPTION = "USER_ENTERED"


class SheetsClient:
    """Cell-range access to one spreadsheet through the Sheets v4 API"""

    def __init__(self, service, spreadsheet_id: str):
        self.service = service
        self.spreadsheet_id = spreadsheet_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "SheetsClient":
        """
        Authenticate with the service-account key and build a Sheets client

        Args:
            settings: Needs sheet_id and service_account_file

        Returns:
            SheetsClient bound to settings.sheet_id
        """
        settings.require("sheet_id", "service_account_file")
        info = load_service_account_info(settings.service_account_file)
        try:
            creds = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
            service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        except (GoogleAuthError, ValueError) as e:
            raise SheetsError("authorize", settings.sheet_id, str(e)) from e
        logger.info(f"Authorized Google Sheets as {info['client_email']}")
        return cls(service, settings.sheet_id)

    def _execute(self, operation: str, range_: str, request) -> Any:
        try:
            return request.execute()
        except (HttpError, GoogleAuthError) as e:
            raise SheetsError(operation, range_, str(e)) from e

    def read(self, range_: str) -> List[List[Any]]:
        """Read unformatted cell values; missing trailing cells are omitted"""
        resp = self._execute("read", range_, self.service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=range_,
            valueRenderOption="UNFORMATTED_VALUE",
        ))
        return resp.get("values", [])

    def update(self, range_: str, values: List[List[Any]]) -> int:
        """Write values as if typed by a user; returns the number of updated cells"""
        resp = self._execute("update", range_, self.service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=range_,
            valueInputOption=VALUE_INPUT_OPTION,
            body={"values": values},
        ))
        return int(resp.get("updatedCells", 0) or 0)

    def clear(self, range_: str) -> None:
        """Remove cell contents in range, keeping formatting"""
        self._execute("clear", range_, self.service.spreadsheets().values().clear(
            spreadsheetId=self.spreadsheet_id,
            range=range_,
            body={},
        ))
