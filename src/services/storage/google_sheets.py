"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Non-technical users can view and edit their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the ledger compensates failed multi-step updates)
- Limited query capabilities (we filter and aggregate in Python)

Cells are read unformatted so numbers arrive as numbers, while date cells
arrive as their formatted strings. Writes use USER_ENTERED so ISO dates
and plain numbers become real date and number cells in the sheet.
"""

from typing import Any, Optional, Sequence

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import a1_to_rowcol
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_settings
from src.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    StorageError,
    TableNotFoundError,
    TableStore,
)


VALUE_RENDER_OPTION = "UNFORMATTED_VALUE"
DATE_TIME_RENDER_OPTION = "FORMATTED_STRING"
VALUE_INPUT_OPTION = "USER_ENTERED"

_sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type(NotFoundError),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        spreadsheet_id: Optional[str] = None,
    ):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        if credentials_path is None or spreadsheet_id is None:
            sheets_settings = get_settings().google_sheets
            credentials_path = credentials_path or sheets_settings.credentials_path
            spreadsheet_id = spreadsheet_id or sheets_settings.spreadsheet_id
        self._credentials_path = credentials_path
        self._spreadsheet_id = spreadsheet_id

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, name: str) -> gspread.Worksheet:
        """Get a worksheet by title (cached)."""
        if name not in self._worksheets:
            try:
                self._worksheets[name] = self.get_spreadsheet().worksheet(name)
            except gspread.WorksheetNotFound:
                raise TableNotFoundError(name)
        return self._worksheets[name]

    def create_worksheet(self, name: str, header: Sequence[str]) -> gspread.Worksheet:
        """Create a worksheet and write its header row."""
        sheet = self.get_spreadsheet().add_worksheet(
            title=name,
            rows=1000,
            cols=max(len(header), 1),
        )
        sheet.append_row(list(header), value_input_option="RAW")
        self._worksheets[name] = sheet
        return sheet


class GoogleSheetsTableStore(TableStore):
    """
    Google Sheets implementation of the table store.

    Each table is one worksheet; the first row holds the column headers.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @_sheets_retry
    def table_names(self) -> list[str]:
        try:
            return [ws.title for ws in self._client.get_spreadsheet().worksheets()]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list tables: {e}")

    @_sheets_retry
    def read_table(self, name: str) -> list[list[Any]]:
        try:
            sheet = self._client.get_worksheet(name)
            return sheet.get_all_values(
                value_render_option=VALUE_RENDER_OPTION,
                date_time_render_option=DATE_TIME_RENDER_OPTION,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read table {name}: {e}")

    @_sheets_retry
    def append_row(self, name: str, values: Sequence[Any]) -> int:
        try:
            sheet = self._client.get_worksheet(name)
            response = sheet.append_row(
                list(values),
                value_input_option=VALUE_INPUT_OPTION,
            )
            # updatedRange looks like "Transactions!A12:I12"
            updated_range = response["updates"]["updatedRange"]
            first_cell = updated_range.split("!")[-1].split(":")[0]
            row, _ = a1_to_rowcol(first_cell)
            return row
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to append to {name}: {e}")

    @_sheets_retry
    def update_row(self, name: str, row_number: int, values: Sequence[Any]) -> None:
        if row_number < 1:
            raise NotFoundError(f"Row {row_number} is outside table {name}")
        try:
            sheet = self._client.get_worksheet(name)
            sheet.update(
                range_name=f"A{row_number}",
                values=[list(values)],
                value_input_option=VALUE_INPUT_OPTION,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update row {row_number} of {name}: {e}")

    @_sheets_retry
    def write_rows(
        self,
        name: str,
        start_row: int,
        rows: Sequence[Sequence[Any]],
    ) -> None:
        if not rows:
            return
        try:
            sheet = self._client.get_worksheet(name)
            sheet.update(
                range_name=f"A{start_row}",
                values=[list(row) for row in rows],
                value_input_option=VALUE_INPUT_OPTION,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write rows to {name}: {e}")

    @_sheets_retry
    def delete_row(self, name: str, row_number: int) -> None:
        try:
            sheet = self._client.get_worksheet(name)
            sheet.delete_rows(row_number)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete row {row_number} of {name}: {e}")

    def ensure_table(self, name: str, header: Sequence[str]) -> None:
        try:
            self._client.get_worksheet(name)
        except TableNotFoundError:
            self._client.create_worksheet(name, header)
