# tests/conftest.py
from typing import Any, List, Optional

import pytest
import requests

from reactors.activity_log import close_event_logs
from reactors.config import Settings
from reactors.db_helper import Database
from reactors.pipeline import ScrapeService
from reactors.provider import PhantomBusterClient

SESSION_COOKIE = "AQEDAR-session-cookie-value-0123456789"


# ---------------------------------------------------------------------
# Test-wide env defaults: never pick up real credentials
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch, tmp_path):
    for name in (
        "PHANTOMBUSTER_API_KEY",
        "PHANTOMBUSTER_PHANTOM_ID",
        "LINKEDIN_SESSION_COOKIE",
        "PHANTOM_ARGUMENT_MAPPING",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_KEY",
        "SUPABASE_ANON_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOCAL_DB_FILE", str(tmp_path / "db.json"))
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logging.jsonl"))
    yield
    close_event_logs()


# ---------------------------------------------------------------------
# Fake requests session for the PhantomBuster client
# ---------------------------------------------------------------------
class FakeResponse:
    def __init__(self, status_code: int = 200, json_data: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else ("" if json_data is None else str(json_data))

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """Returns scripted responses in order; exceptions in the script are raised."""

    def __init__(self, launch: Any = None, outputs: Optional[List[Any]] = None):
        self.launch = launch if launch is not None else FakeResponse(200, {"containerId": "c-1"})
        self.outputs = list(outputs or [])
        self.calls: List[dict] = []
        self.closed = False

    @property
    def fetch_calls(self) -> int:
        return sum(1 for c in self.calls if c["url"].endswith("/containers/fetch-output"))

    @property
    def launch_calls(self) -> int:
        return sum(1 for c in self.calls if c["url"].endswith("/agents/launch"))

    def close(self):
        self.closed = True

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if url.endswith("/agents/launch"):
            item = self.launch
        else:
            item = self.outputs.pop(0) if self.outputs else FakeResponse(200, {})
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, FakeResponse):
            return item
        return FakeResponse(200, item)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def client_factory():
    def make(session: FakeSession) -> PhantomBusterClient:
        return PhantomBusterClient("pb-test-key", base_url="https://pb.test/api/v2", session=session)

    return make


class SleepRecorder:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def no_sleep():
    return SleepRecorder()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        phantombuster_api_key="pb-test-key",
        phantombuster_phantom_id="agent-42",
        linkedin_session_cookie=SESSION_COOKIE,
        phantombuster_base_url="https://pb.test/api/v2",
        local_db_file=str(tmp_path / "db.json"),
        log_file=str(tmp_path / "logging.jsonl"),
    )


@pytest.fixture
def db(settings) -> Database:
    return Database(local_file=settings.local_db_file)


@pytest.fixture
def service_factory(settings, db, client_factory, no_sleep):
    def make(session: FakeSession, **overrides) -> ScrapeService:
        cfg = settings.model_copy(update=overrides)
        return ScrapeService.from_settings(cfg, db, client=client_factory(session), sleep=no_sleep)

    return make


def requests_connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("Connection refused")
