import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from botapi.domain.models.call import Attachment
from botapi.domain.models.outcome import OtherFailure, Success, ThrottleFailure
from botapi.infrastructure.transport.aiohttp_transport import AiohttpTransport, outcome_from_envelope

TOKEN = "123:abc"


def test_ok_envelope_maps_to_success():
    assert outcome_from_envelope({"ok": True, "result": {"id": 1}}) == Success({"id": 1})


def test_429_with_retry_after_maps_to_throttle():
    outcome = outcome_from_envelope({
        "ok": False, "error_code": 429, "description": "Too Many Requests: retry after 5",
        "parameters": {"retry_after": 5},
    })
    assert isinstance(outcome, ThrottleFailure)
    assert outcome.retry_after == 5.0


def test_429_without_retry_after_is_an_ordinary_failure():
    outcome = outcome_from_envelope({"ok": False, "error_code": 429, "description": "slow down"})
    assert isinstance(outcome, OtherFailure)
    assert outcome.error_code == 429


def test_remote_error_keeps_code_and_description():
    outcome = outcome_from_envelope({"ok": False, "error_code": 400, "description": "Bad Request"})
    assert outcome == OtherFailure(error_code=400, description="Bad Request")


@pytest.mark.parametrize("payload", [None, [], {"result": 1}, {"ok": "yes"}])
def test_malformed_envelope_is_a_transport_failure(payload):
    outcome = outcome_from_envelope(payload)
    assert isinstance(outcome, OtherFailure)
    assert outcome.transport_error is True
    assert outcome.error_code is None


def make_api_app(received: list) -> web.Application:
    async def handle(request: web.Request) -> web.Response:
        method = request.match_info["method"]
        if request.content_type == "application/json":
            body = await request.json()
        else:
            form = await request.post()
            body = {name: (value.file.read() if hasattr(value, "file") else value) for name, value in form.items()}
        received.append((request.match_info["token"], method, body))
        if method == "broken":
            return web.Response(text="<html>bad gateway</html>", status=502)
        return web.json_response({"ok": True, "result": {"echo": method}})

    app = web.Application()
    app.router.add_post("/bot{token}/{method}", handle)
    return app


@pytest.mark.asyncio
async def test_send_posts_json_to_method_url():
    received = []
    server = TestServer(make_api_app(received))
    await server.start_server()
    transport = AiohttpTransport(TOKEN, str(server.make_url("")))
    try:
        outcome = await transport.send("sendMessage", {"chat_id": 1, "text": "hi"})
    finally:
        await transport.close()
        await server.close()

    assert outcome == Success({"echo": "sendMessage"})
    assert received == [("123:abc", "sendMessage", {"chat_id": 1, "text": "hi"})]


@pytest.mark.asyncio
async def test_send_with_attachment_uses_multipart():
    received = []
    server = TestServer(make_api_app(received))
    await server.start_server()
    transport = AiohttpTransport(TOKEN, str(server.make_url("")))
    try:
        outcome = await transport.send(
            "setChatPhoto",
            {"chat_id": 5},
            Attachment("photo", b"img-bytes", filename="p.jpg", content_type="image/jpeg"),
        )
    finally:
        await transport.close()
        await server.close()

    assert isinstance(outcome, Success)
    _, method, body = received[0]
    assert method == "setChatPhoto"
    assert body["chat_id"] == "5"
    assert body["photo"] == b"img-bytes"


@pytest.mark.asyncio
async def test_undecodable_body_is_a_transport_failure():
    server = TestServer(make_api_app([]))
    await server.start_server()
    transport = AiohttpTransport(TOKEN, str(server.make_url("")))
    try:
        outcome = await transport.send("broken", {})
    finally:
        await transport.close()
        await server.close()

    assert isinstance(outcome, OtherFailure)
    assert outcome.transport_error is True
    assert "502" in outcome.description


@pytest.mark.asyncio
async def test_connection_error_is_a_transport_failure(unused_tcp_port):
    transport = AiohttpTransport(TOKEN, f"http://127.0.0.1:{unused_tcp_port}", request_timeout=2)
    try:
        outcome = await transport.send("getMe", {})
    finally:
        await transport.close()
    assert isinstance(outcome, OtherFailure)
    assert outcome.transport_error is True
    assert outcome.error_code is None


def test_long_poll_timeout_extends_request_timeout():
    transport = AiohttpTransport(TOKEN, request_timeout=5)
    assert transport._timeout_for({"timeout": 30}).total == 35
    assert transport._timeout_for({}).total == 5
