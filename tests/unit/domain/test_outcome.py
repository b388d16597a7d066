import pytest

from botapi.domain.exceptions import CallError, RemoteError, ThrottleError, TransportError
from botapi.domain.models.outcome import OtherFailure, Success, ThrottleFailure, raise_for_outcome


def test_success_returns_payload():
    assert raise_for_outcome(Success({"id": 1})) == {"id": 1}
    assert Success().ok is True


def test_throttle_failure_raises_throttle_error():
    outcome = ThrottleFailure(retry_after=3)
    with pytest.raises(ThrottleError) as exc_info:
        raise_for_outcome(outcome, method="sendMessage")
    assert exc_info.value.retry_after == 3
    assert exc_info.value.method == "sendMessage"
    assert exc_info.value.outcome is outcome


def test_remote_failure_raises_remote_error_with_details():
    outcome = OtherFailure(error_code=400, description="Bad Request: chat not found", parameters={"x": 1})
    with pytest.raises(RemoteError) as exc_info:
        raise_for_outcome(outcome, method="sendMessage")
    error = exc_info.value
    assert error.error_code == 400
    assert error.description == "Bad Request: chat not found"
    assert error.parameters == {"x": 1}
    assert "[400]" in str(error)


def test_transport_failure_raises_transport_error():
    outcome = OtherFailure(error_code=None, description="Connection refused", transport_error=True)
    with pytest.raises(TransportError, match="Connection refused"):
        raise_for_outcome(outcome, method="getMe")


def test_all_call_errors_share_a_base():
    assert issubclass(ThrottleError, CallError)
    assert issubclass(RemoteError, CallError)
    assert issubclass(TransportError, CallError)
