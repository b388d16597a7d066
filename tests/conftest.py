import collections
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Tuple

import pytest
from typer.testing import CliRunner

from botapi.core.client import Client, ClientConfig
from botapi.domain.interfaces.transport import Transport
from botapi.domain.models.call import Attachment
from botapi.domain.models.outcome import CallOutcome, Success
from botapi.infrastructure.cli.display import ConsoleDisplay
from botapi.infrastructure.config import settings

TEST_TOKEN = "123456:TEST-token_abc"


class ScriptedTransport(Transport):
    """Transport double that replays scripted outcomes and records every send.

    Outcomes are consumed in order. A callable in the script is invoked with
    (method, params) and its return value is used as the outcome.
    """

    def __init__(self, outcomes: Optional[List[Any]] = None):
        self.outcomes: Deque[Any] = collections.deque(outcomes or [])
        self.sent: List[Tuple[str, Dict[str, Any], Optional[Attachment]]] = []
        self.closed = False

    def push(self, *outcomes: Any) -> None:
        self.outcomes.extend(outcomes)

    @property
    def methods(self) -> List[str]:
        return [method for method, _, _ in self.sent]

    async def send(
        self,
        method: str,
        params: Mapping[str, Any],
        attachment: Optional[Attachment] = None,
    ) -> CallOutcome:
        self.sent.append((method, dict(params), attachment))
        if not self.outcomes:
            raise AssertionError(f"Unexpected call to {method}: script exhausted")
        outcome = self.outcomes.popleft()
        if callable(outcome):
            outcome = outcome(method, params)
        return outcome

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self, on_sleep: Optional[Callable[[float], None]] = None):
        self.delays: List[float] = []
        self._on_sleep = on_sleep

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._on_sleep is not None:
            self._on_sleep(delay)


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def transport():
    return ScriptedTransport()


@pytest.fixture
def events():
    return []


@pytest.fixture
def client(transport: ScriptedTransport, events: list):
    """A client wired to the scripted transport; events land in ``events``."""
    return Client(config=ClientConfig(token=TEST_TOKEN), transport=transport, event_sink=events.append)


@pytest.fixture
def sleep():
    return RecordingSleep()


def user_payload(user_id: int = 42, username: str = "test_bot") -> Dict[str, Any]:
    return {"id": user_id, "is_bot": True, "first_name": "Test", "username": username}


def message_update(update_id: int, text: str = "hello", chat_id: int = 7) -> Dict[str, Any]:
    return {
        "update_id": update_id,
        "message": {
            "message_id": update_id * 10,
            "date": 1700000000,
            "chat": {"id": chat_id, "type": "private", "first_name": "Ada"},
            "from": {"id": chat_id, "is_bot": False, "first_name": "Ada"},
            "text": text,
        },
    }


def ok(result: Any = True) -> Success:
    return Success(result)


@pytest.fixture(autouse=True)
def isolated_configuration(monkeypatch, tmp_path):
    """Keeps tests away from the developer's real config files and env."""
    for key in ("BOT_TOKEN", "BOTAPI_BOT_TOKEN", "BOTAPI_API_BASE_URL", "BOTAPI_API_LOCAL_SERVER",
                "BOTAPI_API_AUTO_WAIT", "BOTAPI_API_THROTTLE_SCOPE", "BOTAPI_POLLING_ALLOWED_UPDATES"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(settings, "DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml")
    monkeypatch.chdir(tmp_path)
    settings.reset_configuration()
    settings.clear_test_config()
    yield
    settings.reset_configuration()
    settings.clear_test_config()


@pytest.fixture
def mock_console_display(mocker):
    """Mocks the ConsoleDisplay to capture output easily.
    Patches the ConsoleDisplay where main.py builds it.
    """
    mock = mocker.MagicMock(spec=ConsoleDisplay)
    mocker.patch("botapi.main.ConsoleDisplay", return_value=mock)
    return mock


@pytest.fixture
def cli_transport(mocker):
    """Scripted transport handed to the client main.py builds."""
    scripted = ScriptedTransport()
    mocker.patch("botapi.main.AiohttpTransport", return_value=scripted)
    return scripted
