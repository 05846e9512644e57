"""
Remote worker/plot segments from the Supabase RPC, and the row adapter
"""

import math
import re
import threading
from datetime import datetime
from typing import List, Optional

import requests
from loguru import logger
from pydantic import ValidationError

from config import REAL_DATA_RPC, REAL_DATA_TIMEOUT_SECONDS, SUPABASE_ANON_KEY, SUPABASE_URL
from models import EnvCheck, RealDataEntry, RealDataResponse, RealDataRow
from utils import calculate_duration, format_duration, format_time, parse_timestamp

MISSING = "-"

ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
DMY_DATE = re.compile(r"^(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})$")
HOURS_PART = re.compile(r"(\d+)\s*h", re.IGNORECASE)
MINUTES_PART = re.compile(r"(\d+)\s*m", re.IGNORECASE)
NUMERIC_MINUTES = re.compile(r"^\d+(\.\d+)?$")


class RealDataError(Exception):
    """Raised when the remote data source fails; carries its message verbatim."""


# ==================== ROW ADAPTER ====================

def _half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_date_dmy(value: Optional[str]) -> str:
    """
    Format the row date as DD/MM/YYYY.

    Accepts ISO dates/datetimes and D/M/YYYY (or D-M-YYYY). Anything else is
    shown raw.
    """
    if not value:
        return MISSING
    text = value.strip()

    if ISO_DATE_PREFIX.match(text):
        if len(text) == 10:
            try:
                parsed = datetime.strptime(text, "%Y-%m-%d")
            except ValueError:
                return MISSING
        else:
            parsed = parse_timestamp(text)
            if parsed is None:
                return MISSING
        return parsed.strftime("%d/%m/%Y")

    match = DMY_DATE.match(text)
    if match:
        day, month, year = match.groups()
        return f"{day.zfill(2)}/{month.zfill(2)}/{year}"

    return value


def parse_duration_to_minutes(duration) -> Optional[int]:
    """
    Parse the RPC duration column into minutes.

    Supports:
     - "6h 53m"
     - "00:32:00" (HH:MM:SS)
     - "32:10" (MM:SS)
     - "45" (plain minutes)
    """
    if duration is None:
        return None
    text = str(duration).strip()
    if not text:
        return None

    hours = HOURS_PART.search(text)
    minutes = MINUTES_PART.search(text)
    if hours or minutes:
        return (int(hours.group(1)) if hours else 0) * 60 + (int(minutes.group(1)) if minutes else 0)

    if ":" in text:
        try:
            parts = [int(p) for p in text.split(":")]
        except ValueError:
            return None
        if len(parts) == 3:
            hh, mm, ss = parts
            return hh * 60 + mm + _half_up(ss / 60)
        if len(parts) == 2:
            mm, ss = parts
            return mm + _half_up(ss / 60)

    if NUMERIC_MINUTES.match(text):
        return _half_up(float(text))

    return None


def get_duration_minutes(row: RealDataRow) -> Optional[int]:
    """Prefer real timestamps, fall back to the duration column"""
    from_times = calculate_duration(row.enter_plot, row.exit_plot)
    if from_times is not None:
        return from_times
    return parse_duration_to_minutes(row.duration)


def row_key(row: RealDataRow, index: int) -> str:
    return f"{row.date}-{row.plot}-{row.worker}-{row.enter_plot or index}"


def adapt_row(row: RealDataRow, index: int) -> RealDataEntry:
    minutes = get_duration_minutes(row)
    return RealDataEntry(
        key=row_key(row, index),
        date=format_date_dmy(row.date),
        plot=row.plot,
        worker=row.worker,
        duration_minutes=minutes,
        duration=MISSING if minutes is None else format_duration(minutes),
        enter_time=format_time(row.enter_plot),
        exit_time=format_time(row.exit_plot),
    )


def adapt_rows(rows: List[RealDataRow]) -> List[RealDataEntry]:
    return [adapt_row(row, index) for index, row in enumerate(rows)]


# ==================== REMOTE CLIENT ====================

class RealDataClient:
    """
    Calls the worker/plot segments RPC through Supabase's REST endpoint.
    """

    def __init__(
        self,
        url: str = SUPABASE_URL,
        key: str = SUPABASE_ANON_KEY,
        rpc: str = REAL_DATA_RPC,
        timeout: float = REAL_DATA_TIMEOUT_SECONDS,
    ):
        self.url = (url or "").rstrip("/")
        self.key = key or ""
        self.rpc = rpc
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.url and self.key)

    def env_check(self) -> EnvCheck:
        return EnvCheck(supabase_url_set=bool(self.url), supabase_key_set=bool(self.key))

    @property
    def endpoint(self) -> str:
        return f"{self.url}/rest/v1/rpc/{self.rpc}"

    def fetch_rows(self) -> List[RealDataRow]:
        """
        Call the RPC and return its rows.

        Raises RealDataError with the remote message on any failure.
        """
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.post(self.endpoint, headers=headers, json={}, timeout=self.timeout)
        except requests.RequestException as e:
            raise RealDataError(str(e)) from e

        if resp.status_code >= 400:
            raise RealDataError(self._error_message(resp))

        try:
            payload = resp.json()
        except ValueError as e:
            raise RealDataError("Invalid JSON returned by the data source") from e

        try:
            return [RealDataRow(**item) for item in (payload or [])]
        except (TypeError, ValidationError) as e:
            raise RealDataError(f"Unexpected row format: {e}") from e

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"{resp.status_code} {resp.reason or 'Error'}"


class RealDataLoader:
    """
    One load attempt of the remote rows.

    Runs the fetch in a background thread. Once cancelled, a response that
    arrives later is discarded instead of applied. A failure is terminal for
    this attempt; there is no retry.
    """

    def __init__(self, client: RealDataClient):
        self.client = client
        self.is_loading = False
        self.cancelled = False
        self.config_missing = False
        self.rows: List[RealDataRow] = []
        self.error: Optional[str] = None
        self.load_thread: Optional[threading.Thread] = None

    def run(self):
        """Fetch and apply the rows unless cancelled meanwhile"""
        if not self.client.is_configured():
            self.config_missing = True
            self.is_loading = False
            logger.warning("Real data source is not configured (SUPABASE_URL / SUPABASE_ANON_KEY)")
            return

        self.is_loading = True
        try:
            rows = self.client.fetch_rows()
        except RealDataError as e:
            if self.cancelled:
                return
            logger.error(f"Real data fetch failed: {e}")
            self.error = str(e)
            self.rows = []
        else:
            if self.cancelled:
                logger.debug("Discarding real data response for a cancelled load")
                return
            self.rows = rows
            self.error = None
            logger.info(f"Loaded {len(rows)} real data rows")
        finally:
            self.is_loading = False

    def start(self):
        """Start the load in a background thread"""
        if self.load_thread and self.load_thread.is_alive():
            logger.debug("Real data load already running")
            return
        self.is_loading = True
        self.load_thread = threading.Thread(target=self.run, daemon=True)
        self.load_thread.start()

    def cancel(self):
        """Discard whatever this load still produces"""
        self.cancelled = True

    def wait(self, timeout: Optional[float] = None):
        if self.load_thread:
            self.load_thread.join(timeout=timeout)

    def to_response(self) -> RealDataResponse:
        entries = adapt_rows(self.rows)
        return RealDataResponse(
            total=len(entries),
            rows=entries,
            error=self.error,
            config_missing=self.config_missing,
        )


# Singleton instance for global access
_real_data_client: Optional[RealDataClient] = None


def get_real_data_client() -> RealDataClient:
    """Get or create the global real data client"""
    global _real_data_client
    if _real_data_client is None:
        _real_data_client = RealDataClient()
    return _real_data_client
