import smtplib

import pytest

from app.notifications.mailer import MailDeliveryError, SmtpMailer, send_otp


class DummySMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = None
        self.messages = []
        DummySMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, message):
        self.messages.append(message)


def test_send_otp_through_smtp(monkeypatch):
    DummySMTP.instances.clear()
    monkeypatch.setattr(smtplib, "SMTP", DummySMTP)
    mailer = SmtpMailer(host="smtp.test", user="robot@example.com", password="pw")

    send_otp(mailer, "buyer@example.com", "Your Verification Code", "123456", 10)

    server = DummySMTP.instances[0]
    assert server.started_tls
    assert server.logged_in == ("robot@example.com", "pw")
    message = server.messages[0]
    assert message["To"] == "buyer@example.com"
    assert "123456" in message.get_content()


def test_unconfigured_or_failing_smtp_raises_retryable_error(monkeypatch):
    with pytest.raises(MailDeliveryError) as excinfo:
        SmtpMailer(host="").send("a@example.com", "s", "b")
    assert excinfo.value.retryable

    class Refusing(DummySMTP):
        def send_message(self, message):
            raise smtplib.SMTPRecipientsRefused({"a@example.com": (550, b"no")})

    monkeypatch.setattr(smtplib, "SMTP", Refusing)
    with pytest.raises(MailDeliveryError):
        SmtpMailer(host="smtp.test").send("a@example.com", "s", "b")


def test_mail_failures_surface_as_retryable_500(client, mailer, monkeypatch):
    def broken(*args, **kwargs):
        raise MailDeliveryError()

    monkeypatch.setattr(mailer, "send", broken)
    response = client.post("/user/request-otp", json={"email": "x@example.com"})
    assert response.status_code == 500
    assert response.json()["retryable"] is True
