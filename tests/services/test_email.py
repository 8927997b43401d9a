# mypy: ignore-errors
from types import SimpleNamespace

import pytest

from foundersocials.services.email import Mailer
from tests.conftest import make_user


def test_unconfigured_mailer_skips_delivery():
    mailer = Mailer(api_key="", sender="noreply@example.com")

    assert mailer.enabled is False
    assert mailer.send("someone@example.com", "Hi", "<p>Hi</p>") is False


def test_send_uses_sendgrid_client(mocker):
    mailer = Mailer(api_key="SG.test", sender="noreply@example.com")
    send = mocker.patch.object(mailer._client, "send", return_value=SimpleNamespace(status_code=202))

    assert mailer.send("someone@example.com", "Hi", "<p>Hi</p>") is True

    [message] = send.call_args.args
    assert message.subject.subject == "Hi"
    assert message.from_email.email == "noreply@example.com"


def test_send_failure_returns_false(mocker):
    mailer = Mailer(api_key="SG.test", sender="noreply@example.com")
    mocker.patch.object(mailer._client, "send", side_effect=RuntimeError("403 Forbidden"))

    assert mailer.send("someone@example.com", "Hi", "<p>Hi</p>") is False


def test_send_without_recipient(mocker):
    mailer = Mailer(api_key="SG.test", sender="noreply@example.com")
    send = mocker.patch.object(mailer._client, "send")

    assert mailer.send(None, "Hi", "<p>Hi</p>") is False
    send.assert_not_called()


@pytest.mark.asyncio
async def test_payment_confirmation_escapes_display_name(db_session, mocker):
    user = make_user(db_session, "judy", display_name="<b>Judy</b>")
    mailer = Mailer(api_key="", sender="noreply@example.com")
    send = mocker.patch.object(mailer, "send", return_value=True)

    assert await mailer.send_payment_confirmation(user) is True

    to, subject, html_content = send.call_args.args
    assert to == "judy@example.com"
    assert subject == "FounderSocials Premium - Payment Confirmation"
    assert "&lt;b&gt;Judy&lt;/b&gt;" in html_content
