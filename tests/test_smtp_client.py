"""Unit tests for SMTP client wrapper.

Tests the SMTPClient for:
- Connection handling (SMTP and SMTP_SSL)
- STARTTLS negotiation
- Authentication (with and without credentials)
- Transient error mapping and connection cleanup
- Sender address building
"""

import smtplib
import socket
from email.message import EmailMessage
from unittest.mock import MagicMock

import pytest

from neo_alerts.config.environment import EnvironmentConfig
from neo_alerts.notifications import SMTPClient, TransientDeliveryError, build_sender_address


@pytest.fixture
def env_config_with_auth():
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="user@example.com",
        smtp_pass="secret123",
    )


@pytest.fixture
def env_config_without_auth():
    return EnvironmentConfig(smtp_host="smtp.example.com", smtp_port=25)


@pytest.fixture
def message():
    msg = EmailMessage()
    msg["From"] = "alerts@example.com"
    msg["To"] = "ada@example.com"
    msg["Subject"] = "Test"
    msg.set_content("body")
    return msg


class TestSMTPClient:
    """Tests for SMTPClient.send()."""

    def test_starttls_and_login(self, env_config_with_auth, message):
        smtp = MagicMock()
        factory = MagicMock(return_value=smtp)
        client = SMTPClient(env_config_with_auth, smtp_factory=factory)

        client.send(message, timeout=12.0)

        factory.assert_called_once_with("smtp.example.com", 587, timeout=12.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("user@example.com", "secret123")
        smtp.send_message.assert_called_once_with(message)
        smtp.quit.assert_called_once()

    def test_no_login_without_credentials(self, env_config_without_auth, message):
        smtp = MagicMock()
        client = SMTPClient(env_config_without_auth, smtp_factory=MagicMock(return_value=smtp))

        client.send(message)

        smtp.login.assert_not_called()
        smtp.send_message.assert_called_once()

    def test_tls_disabled_skips_starttls(self, env_config_without_auth, message):
        smtp = MagicMock()
        client = SMTPClient(
            env_config_without_auth, use_tls=False, smtp_factory=MagicMock(return_value=smtp)
        )

        client.send(message)

        smtp.starttls.assert_not_called()

    def test_port_465_uses_implicit_tls(self, message):
        env = EnvironmentConfig(smtp_host="smtp.example.com", smtp_port=465)
        smtp = MagicMock()
        ssl_factory = MagicMock(return_value=smtp)
        plain_factory = MagicMock()
        client = SMTPClient(env, timeout=7.0, smtp_factory=plain_factory, smtp_ssl_factory=ssl_factory)

        client.send(message)

        plain_factory.assert_not_called()
        args, kwargs = ssl_factory.call_args
        assert args == ("smtp.example.com", 465)
        assert kwargs["timeout"] == 7.0
        assert "context" in kwargs
        smtp.starttls.assert_not_called()

    @pytest.mark.parametrize(
        "error",
        [
            smtplib.SMTPServerDisconnected("gone"),
            smtplib.SMTPAuthenticationError(535, b"bad credentials"),
            socket.timeout("timed out"),
            ConnectionRefusedError("refused"),
        ],
    )
    def test_failures_raise_transient_error(self, env_config_with_auth, message, error):
        smtp = MagicMock()
        smtp.send_message.side_effect = error
        client = SMTPClient(env_config_with_auth, smtp_factory=MagicMock(return_value=smtp))

        with pytest.raises(TransientDeliveryError):
            client.send(message)

        smtp.quit.assert_called_once()

    def test_connect_failure_raises_transient_error(self, env_config_with_auth, message):
        factory = MagicMock(side_effect=OSError("network unreachable"))
        client = SMTPClient(env_config_with_auth, smtp_factory=factory)

        with pytest.raises(TransientDeliveryError):
            client.send(message)

    def test_quit_errors_are_ignored(self, env_config_with_auth, message):
        smtp = MagicMock()
        smtp.quit.side_effect = smtplib.SMTPServerDisconnected("already closed")
        client = SMTPClient(env_config_with_auth, smtp_factory=MagicMock(return_value=smtp))

        client.send(message)

        smtp.send_message.assert_called_once()


class TestBuildSenderAddress:
    """Tests for build_sender_address()."""

    def test_prefers_alert_from_email(self):
        env = EnvironmentConfig(
            smtp_host="smtp.example.com",
            smtp_port=587,
            smtp_user="user@example.com",
            smtp_pass="x",
            alert_from_email="alerts@example.com",
        )
        assert build_sender_address(env) == "NASA Space Watch <alerts@example.com>"

    def test_falls_back_to_smtp_user(self, env_config_with_auth):
        assert build_sender_address(env_config_with_auth) == "NASA Space Watch <user@example.com>"

    def test_falls_back_to_noreply_at_host(self, env_config_without_auth):
        assert build_sender_address(env_config_without_auth) == "NASA Space Watch <noreply@smtp.example.com>"

    def test_custom_sender_name(self):
        env = EnvironmentConfig(smtp_host="smtp.example.com", smtp_port=25, smtp_sender_name="Sky Watch")
        assert build_sender_address(env) == "Sky Watch <noreply@smtp.example.com>"
