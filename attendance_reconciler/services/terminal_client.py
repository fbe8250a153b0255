"""
Biometric terminal clients.

The engine only needs two reads from a terminal: the attendance log since an
instant and the list of enrolled users. Entries are returned raw (dicts in the
device's shape: user_id, record_time, type, state); validation happens in the
ingestor.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

import requests

from attendance_reconciler.core.config import settings
from attendance_reconciler.utils.datetime_utils import ensure_utc

logger = logging.getLogger(__name__)


class TerminalUnavailable(Exception):
    """The terminal (or its gateway) could not be reached or answered garbage."""


class TerminalClient(Protocol):
    def fetch_punches_since(self, since: datetime) -> List[Dict[str, Any]]:
        ...

    def fetch_known_subjects(self) -> List[str]:
        ...


class HttpTerminalClient:
    """
    Talks to a terminal gateway exposing the device log over HTTP.

    GET {base_url}/attendances?since=<iso>  -> {"data": [...]} or [...]
    GET {base_url}/users                    -> {"data": [{"user_id": ...}]} or [...]
    """

    def __init__(self, base_url: str, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.TERMINAL_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise TerminalUnavailable(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise TerminalUnavailable(f"GET {url} returned invalid JSON") from e

        if isinstance(payload, dict):
            payload = payload.get("data", [])
        if not isinstance(payload, list):
            raise TerminalUnavailable(f"GET {url} returned unexpected payload type {type(payload).__name__}")
        return payload

    def fetch_punches_since(self, since: datetime) -> List[Dict[str, Any]]:
        entries = self._get("/attendances", params={"since": ensure_utc(since).isoformat()})
        logger.debug("Terminal returned %d attendance entries since %s", len(entries), since)
        return entries

    def fetch_known_subjects(self) -> List[str]:
        users = self._get("/users")
        subjects = []
        for user in users:
            subject = user.get("user_id") if isinstance(user, dict) else user
            if subject not in (None, ""):
                subjects.append(str(subject))
        return subjects


class InMemoryTerminalClient:
    """
    Terminal double holding its log in memory. Used for tests and local runs
    without a gateway.

    Like a real device it returns its whole log; filtering against the
    watermark is the ingestor's job.
    """

    def __init__(self, entries: Optional[Iterable[Dict[str, Any]]] = None, subjects: Optional[Iterable[str]] = None):
        self.entries: List[Dict[str, Any]] = list(entries or [])
        self.subjects: List[str] = [str(s) for s in (subjects or [])]
        self.available = True
        self.calls = 0

    def add(self, user_id, record_time, punch_type: int = 0, state: int = 0) -> None:
        self.entries.append({"user_id": user_id, "record_time": record_time, "type": punch_type, "state": state})

    def fetch_punches_since(self, since: datetime) -> List[Dict[str, Any]]:
        self.calls += 1
        if not self.available:
            raise TerminalUnavailable("terminal offline")
        return list(self.entries)

    def fetch_known_subjects(self) -> List[str]:
        if not self.available:
            raise TerminalUnavailable("terminal offline")
        known = set(self.subjects)
        for entry in self.entries:
            if isinstance(entry, dict) and entry.get("user_id") not in (None, ""):
                known.add(str(entry["user_id"]))
        return sorted(known)


def build_terminal_client() -> TerminalClient:
    """Client for the configured gateway, or an empty in-memory terminal when none is configured."""
    if settings.TERMINAL_BASE_URL:
        return HttpTerminalClient(settings.TERMINAL_BASE_URL)
    logger.warning("TERMINAL_BASE_URL not set; using an empty in-memory terminal")
    return InMemoryTerminalClient()


__all__ = [
    "TerminalClient",
    "TerminalUnavailable",
    "HttpTerminalClient",
    "InMemoryTerminalClient",
    "build_terminal_client",
]
