"""End-to-end alert flow against a real SQLite database.

Detection publishes to the durable topic, the consumer turns events into
unsent notifications, and the dispatcher emails every enabled recipient
through an SMTPClient whose smtplib connection is faked.
"""

import json
import smtplib
import threading
from datetime import date, datetime, timezone
from unittest.mock import Mock

import pytest

from neo_alerts.config import parse_app_config
from neo_alerts.config.environment import EnvironmentConfig
from neo_alerts.detection import HazardDetector
from neo_alerts.messaging import EventConsumer, EventPublisher, SqlTopic
from neo_alerts.notifications import ContentBuilder, EmailDispatcher, EmailSender, SMTPClient
from neo_alerts.persistence import NotificationStore, SqlRecipientDirectory
from neo_alerts.pipeline import DetectionPipeline
from tests.helpers import make_detection


class FakeSMTP:
    """Stands in for smtplib.SMTP; refuses chosen recipients a number of times."""

    def __init__(self, failures):
        self.failures = failures
        self.delivered = []
        self._lock = threading.Lock()

    def __call__(self, host, port, timeout=None):
        connection = Mock()
        connection.send_message.side_effect = self._send
        return connection

    def _send(self, message):
        with self._lock:
            to = message["To"]
            if self.failures.get(to, 0) > 0:
                self.failures[to] -= 1
                raise smtplib.SMTPServerDisconnected("connection lost")
            self.delivered.append(message)


class AlertService:
    """Wires the real components the way the entry point does."""

    def __init__(self, detections, failures=None, recipients=None):
        self.feed = Mock()
        self.feed.fetch.return_value = detections
        self.smtp = FakeSMTP(dict(failures or {}))
        self.sleep = Mock()

        self.topic = SqlTopic("asteroid-alert")
        self.store = NotificationStore()
        self.consumer = EventConsumer(self.store)
        self.consumer.subscribe(self.topic)

        app_config = parse_app_config(
            {
                "recipients": recipients
                if recipients is not None
                else [
                    {"name": "Ada", "email": "ada@example.com"},
                    {"name": "Grace", "email": "grace@example.com"},
                ]
            }
        )
        directory = SqlRecipientDirectory()
        directory.seed(app_config.recipients)

        env = EnvironmentConfig(smtp_host="smtp.example.com", smtp_port=587)
        sender = EmailSender(
            SMTPClient(env, use_tls=False, smtp_factory=self.smtp),
            from_address="NASA Space Watch <alerts@example.com>",
            sleep=self.sleep,
        )

        self.pipeline = DetectionPipeline(
            self.feed, HazardDetector(), EventPublisher(self.topic), today=lambda: date(2025, 11, 1)
        )
        self.dispatcher = EmailDispatcher(
            self.store,
            directory,
            ContentBuilder(clock=lambda: datetime(2025, 11, 1, 9, 30, tzinfo=timezone.utc)),
            sender,
        )

    def detect_and_consume(self):
        detection = self.pipeline.run_once()
        drain = self.consumer.drain()
        return detection, drain


@pytest.fixture
def two_hazards():
    return [
        make_detection(neo_id="1", name="(2024 AB1)", distance="4512345.6789"),
        make_detection(neo_id="2", name="(433) Eros", distance="750000", diameter_min=16000.0, diameter_max=17680.0),
        make_detection(neo_id="3", name="(2019 XY)", hazardous=False),
    ]


class TestAlertFlow:
    """Detection through dispatch with real persistence."""

    def test_two_hazards_become_two_unsent_notifications(self, database, two_hazards):
        service = AlertService(two_hazards)

        detection, drain = service.detect_and_consume()

        assert detection.event_count == 2
        assert detection.published_count == 2
        assert (drain.delivered, drain.acked, drain.failed) == (2, 2, 0)
        assert service.topic.pending_count() == 0

        unsent = service.store.load_unsent()
        assert sorted(n.asteroid_name for n in unsent) == ["(2024 AB1)", "(433) Eros"]
        assert all(not n.sent for n in unsent)

    def test_every_recipient_gets_one_email_with_all_cards(self, database, two_hazards):
        service = AlertService(two_hazards)
        service.detect_and_consume()

        result = service.dispatcher.run_alert_cycle()

        assert (result.success_count, result.failure_count) == (2, 0)
        assert sorted(m["To"] for m in service.smtp.delivered) == ["ada@example.com", "grace@example.com"]
        for message in service.smtp.delivered:
            html = message.get_body(preferencelist=("html",)).get_content()
            assert "(2024 AB1)" in html
            assert "Eros" in html
        assert service.store.load_unsent() == []
        assert service.store.count(sent=True) == 2

    def test_partial_delivery_commits_both_notifications(self, database, two_hazards):
        service = AlertService(two_hazards, failures={"grace@example.com": 3})
        service.detect_and_consume()

        result = service.dispatcher.run_alert_cycle()

        assert (result.success_count, result.failure_count) == (1, 1)
        assert result.notifications_committed == 2
        assert service.store.load_unsent() == []

    def test_total_failure_leaves_notifications_unsent(self, database, two_hazards):
        service = AlertService(two_hazards, failures={"ada@example.com": 3, "grace@example.com": 3})
        service.detect_and_consume()

        result = service.dispatcher.run_alert_cycle()

        assert (result.success_count, result.failure_count) == (0, 2)
        assert len(service.store.load_unsent()) == 2

        # next cycle retries once the server recovers
        retry = service.dispatcher.run_alert_cycle()
        assert retry.success_count == 2
        assert service.store.load_unsent() == []

    def test_sender_retries_with_linear_backoff(self, database, two_hazards):
        service = AlertService(
            two_hazards,
            failures={"ada@example.com": 2},
            recipients=[{"name": "Ada", "email": "ada@example.com"}],
        )
        service.detect_and_consume()

        result = service.dispatcher.run_alert_cycle()

        assert result.success_count == 1
        assert [c.args[0] for c in service.sleep.call_args_list] == [1.0, 2.0]

    def test_repeated_detection_is_not_deduplicated(self, database):
        service = AlertService([make_detection(neo_id="1", name="(2024 AB1)")])

        service.detect_and_consume()
        service.detect_and_consume()

        assert len(service.store.load_unsent()) == 2

    def test_cycle_without_notifications_is_noop(self, database):
        service = AlertService([])
        service.detect_and_consume()

        result = service.dispatcher.run_alert_cycle()

        assert result.is_noop
        assert service.smtp.delivered == []

    def test_cycle_without_recipients_keeps_notifications(self, database, two_hazards):
        service = AlertService(two_hazards, recipients=[])
        service.detect_and_consume()

        result = service.dispatcher.run_alert_cycle()

        assert result.is_noop
        assert len(service.store.load_unsent()) == 2

    def test_wire_payload_on_topic(self, database):
        service = AlertService([make_detection(name="(2024 AB1)", distance="4512345.6789")])
        payloads = []
        service.topic.subscribe(payloads.append)

        service.pipeline.run_once()
        service.topic.deliver_pending()

        body = json.loads(payloads[0])
        assert body["asteroidName"] == "(2024 AB1)"
        assert body["closeApproachDate"] == "2025-11-04"
