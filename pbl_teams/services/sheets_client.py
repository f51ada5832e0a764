# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Google Sheets client used by the sync engine.
Every call is bounded by the configured timeout; transport and API failures
surface as IntegrationError.
"""

import json
from typing import Any, Optional

import httplib2
from google.oauth2.service_account import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from pbl_teams.core.config import Settings
from pbl_teams.core.errors import IntegrationError
from pbl_teams.core.logging import get_logger
from pbl_teams.services.sheet_layout import a1_range

logger = get_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class SheetsClient:
    """Spreadsheet operations the sync engine depends on."""

    def get_spreadsheet_metadata(self) -> dict[str, Any]:
        raise NotImplementedError

    def create_tabs(self, names: list[str]) -> None:
        raise NotImplementedError

    def read_range(self, tab: str, cells: str) -> list[list[Any]]:
        raise NotImplementedError

    def write_range(self, tab: str, cells: str, values: list[list[Any]]) -> None:
        raise NotImplementedError


class GoogleSheetsClient(SheetsClient):
    """Sheets API v4 over a service account."""

    def __init__(self, spreadsheet_id: str, credentials: Credentials, timeout: float) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._credentials = credentials
        self._timeout = timeout
        self._service = None

    @property
    def spreadsheets(self):
        if self._service is None:
            http = AuthorizedHttp(self._credentials, http=httplib2.Http(timeout=self._timeout))
            self._service = build("sheets", "v4", http=http, cache_discovery=False)
        return self._service.spreadsheets()

    def get_spreadsheet_metadata(self) -> dict[str, Any]:
        return self._execute(
            self.spreadsheets.get(
                spreadsheetId=self._spreadsheet_id,
                fields="sheets(properties(sheetId,title))",
            ),
            "metadata read",
        )

    def create_tabs(self, names: list[str]) -> None:
        if not names:
            return
        self._execute(
            self.spreadsheets.batchUpdate(
                spreadsheetId=self._spreadsheet_id,
                body={"requests": [{"addSheet": {"properties": {"title": n}}} for n in names]},
            ),
            "tab creation",
        )

    def read_range(self, tab: str, cells: str) -> list[list[Any]]:
        resp = self._execute(
            self.spreadsheets.values().get(
                spreadsheetId=self._spreadsheet_id, range=a1_range(tab, cells)
            ),
            f"read of {tab}",
        )
        return resp.get("values", []) or []

    def write_range(self, tab: str, cells: str, values: list[list[Any]]) -> None:
        self._execute(
            self.spreadsheets.values().update(
                spreadsheetId=self._spreadsheet_id,
                range=a1_range(tab, cells),
                valueInputOption="RAW",
                body={"values": values},
            ),
            f"write of {tab}",
        )

    @staticmethod
    def _execute(request, action: str) -> dict[str, Any]:
        try:
            return request.execute()
        except (HttpError, httplib2.HttpLib2Error, OSError) as exc:
            raise IntegrationError(f"Google Sheets {action} failed: {exc}") from exc


def _service_account_info(cfg: Settings) -> Optional[dict[str, str]]:
    email = cfg.GOOGLE_SERVICE_ACCOUNT_EMAIL
    key = cfg.GOOGLE_PRIVATE_KEY
    if (not email or not key) and cfg.GOOGLE_SERVICE_ACCOUNT_JSON_PATH:
        try:
            with open(cfg.GOOGLE_SERVICE_ACCOUNT_JSON_PATH, encoding="utf-8") as fh:
                parsed = json.load(fh)
            email = str(parsed.get("client_email") or "").strip()
            key = str(parsed.get("private_key") or "")
        except (OSError, ValueError) as exc:
            logger.warning("Service account JSON unreadable: %s", exc)
    if not email or not key:
        return None
    return {
        "client_email": email,
        "private_key": key.replace("\\n", "\n"),
        "token_uri": TOKEN_URI,
    }


def build_sheets_client(cfg: Settings) -> Optional[GoogleSheetsClient]:
    """None when the spreadsheet id or service account is not configured."""
    if not cfg.GOOGLE_SHEETS_ID:
        return None
    info = _service_account_info(cfg)
    if info is None:
        return None
    try:
        credentials = Credentials.from_service_account_info(info, scopes=SCOPES)
    except ValueError as exc:
        logger.error("Invalid Google service account credentials: %s", exc)
        return None
    return GoogleSheetsClient(cfg.GOOGLE_SHEETS_ID, credentials, cfg.SHEETS_TIMEOUT)
