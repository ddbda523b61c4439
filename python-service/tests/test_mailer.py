import json

import httpx
import pytest

from mailer import LogMailer, MailerError, ResendMailer, get_mailer


@pytest.mark.asyncio
async def test_resend_posts_message():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"id": "email-1"})

    mailer = ResendMailer("re_key", sender="App <a@example.com>", transport=httpx.MockTransport(handler))
    await mailer.send("owner@example.com", "Hello", "<p>Hi</p>")

    assert seen[0].headers["Authorization"] == "Bearer re_key"
    assert json.loads(seen[0].content) == {
        "from": "App <a@example.com>",
        "to": "owner@example.com",
        "subject": "Hello",
        "html": "<p>Hi</p>",
    }


@pytest.mark.asyncio
async def test_resend_error_raises_mailer_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(422, text="invalid from"))
    mailer = ResendMailer("re_key", transport=transport)

    with pytest.raises(MailerError) as exc:
        await mailer.send("owner@example.com", "Hello", "<p>Hi</p>")

    assert "422" in str(exc.value)


@pytest.mark.asyncio
async def test_network_error_raises_mailer_error():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    mailer = ResendMailer("re_key", transport=httpx.MockTransport(handler))

    with pytest.raises(MailerError):
        await mailer.send("owner@example.com", "Hello", "<p>Hi</p>")


def test_get_mailer_falls_back_to_log(monkeypatch):
    monkeypatch.setattr("mailer.RESEND_API_KEY", None)
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    assert isinstance(get_mailer(), LogMailer)

    monkeypatch.setattr("mailer.RESEND_API_KEY", "re_key")
    assert isinstance(get_mailer(), ResendMailer)
