"""Main entry point for the NEO hazard alert service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import signal
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from neo_alerts.config.environment import EnvironmentConfig
from neo_alerts.config.exceptions import ConfigurationError
from neo_alerts.config.loader import load_config
from neo_alerts.config.models import AppConfig
from neo_alerts.detection import HazardDetector
from neo_alerts.feeds import ApodClient, NeoFeedClient
from neo_alerts.logging import get_logger
from neo_alerts.logging.config import configure_logging
from neo_alerts.messaging import EventConsumer, EventPublisher, SqlTopic, TopicDrainResult
from neo_alerts.notifications import (
    ContentBuilder,
    CycleResult,
    EmailDispatcher,
    EmailSender,
    SMTPClient,
    build_sender_address,
)
from neo_alerts.persistence import (
    NotificationStore,
    PersistenceError,
    SqlRecipientDirectory,
    close_database,
    init_database,
)
from neo_alerts.pipeline import DetectionPipeline
from neo_alerts.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")

DETECTION_JOB_ID = "neo-detection"
DRAIN_JOB_ID = "topic-drain"
DISPATCH_JOB_ID = "alert-dispatch"


@dataclass
class Components:
    """The wired service graph shared by manual and daemon modes."""

    pipeline: DetectionPipeline
    consumer: EventConsumer
    dispatcher: EmailDispatcher
    topic: SqlTopic
    feed_client: NeoFeedClient
    apod_client: Optional[ApodClient] = None

    def close(self) -> None:
        self.feed_client.close()
        if self.apod_client is not None:
            self.apod_client.close()


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > environment > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_components(app_config: AppConfig, env_config: EnvironmentConfig) -> Components:
    """
    Wire the detection, messaging and notification layers together.

    The database must already be initialized.
    """
    advanced = app_config.advanced

    feed_client = NeoFeedClient(
        env_config.nasa_api_key,
        base_url=app_config.feed.base_url,
        timeout=advanced.http_request_timeout,
        user_agent=advanced.user_agent,
    )

    apod_client = None
    if app_config.enrichment.enabled:
        apod_client = ApodClient(
            env_config.nasa_api_key,
            base_url=app_config.enrichment.base_url,
            timeout=advanced.http_request_timeout,
            user_agent=advanced.user_agent,
        )

    topic = SqlTopic(
        app_config.messaging.topic,
        batch_size=app_config.messaging.batch_size,
        max_delivery_attempts=app_config.messaging.max_delivery_attempts,
    )
    publisher = EventPublisher(topic, max_concurrency=app_config.messaging.publish_max_concurrency)

    store = NotificationStore()
    consumer = EventConsumer(store)
    consumer.subscribe(topic)

    recipients = SqlRecipientDirectory()
    recipients.seed(app_config.recipients)

    smtp_client = SMTPClient(
        env_config,
        use_tls=app_config.email.use_tls,
        timeout=app_config.email.attempt_timeout_seconds,
    )
    sender = EmailSender(
        smtp_client,
        from_address=build_sender_address(env_config),
        max_attempts=app_config.email.max_attempts,
        retry_delay_seconds=app_config.email.retry_delay_seconds,
        attempt_timeout_seconds=app_config.email.attempt_timeout_seconds,
    )
    dispatcher = EmailDispatcher(
        store=store,
        recipients=recipients,
        content_builder=ContentBuilder(enrichment_provider=apod_client),
        sender=sender,
        subject=app_config.email.subject,
        max_concurrency=app_config.dispatch.max_concurrency,
    )

    pipeline = DetectionPipeline(
        feed_client=feed_client,
        detector=HazardDetector(),
        publisher=publisher,
        lookahead_days=app_config.feed.lookahead_days,
    )

    return Components(
        pipeline=pipeline,
        consumer=consumer,
        dispatcher=dispatcher,
        topic=topic,
        feed_client=feed_client,
        apod_client=apod_client,
    )


def run_manual(components: Components) -> int:
    """
    Run one detection, one drain and one dispatch cycle.

    Returns:
        0 when every step succeeded, 1 otherwise
    """
    logger.info("Executing manual run", extra={"event": "service.manual_run.starting"})

    detection = components.pipeline.run_once()

    try:
        drain = components.consumer.drain()
    except PersistenceError as e:
        logger.error(
            f"Topic drain failed: {e}",
            extra={"event": "service.manual_run.drain_failed", "error_type": type(e).__name__},
        )
        drain = TopicDrainResult()
        drain_failed = True
    else:
        drain_failed = drain.failed > 0

    try:
        cycle = components.dispatcher.run_alert_cycle()
    except PersistenceError as e:
        logger.error(
            f"Dispatch cycle failed: {e}",
            extra={"event": "service.manual_run.dispatch_failed", "error_type": type(e).__name__},
        )
        cycle = CycleResult(error=str(e))

    had_errors = detection.had_errors or drain_failed or cycle.error is not None

    logger.info(
        f"Manual run completed: "
        f"{detection.event_count} hazards detected, "
        f"{detection.published_count} published, "
        f"{drain.acked} consumed, "
        f"{cycle.success_count} emails sent",
        extra={
            "event": "service.manual_run.completed",
            "had_errors": had_errors,
            "fetched_count": detection.fetched_count,
            "event_count": detection.event_count,
            "published_count": detection.published_count,
            "publish_failures": detection.publish_failures,
            "drain_acked": drain.acked,
            "drain_failed": drain.failed,
            "emails_sent": cycle.success_count,
            "emails_failed": cycle.failure_count,
            "notifications_committed": cycle.notifications_committed,
        },
    )

    return 1 if had_errors else 0


def schedule_jobs(
    scheduler_service: SchedulerService, components: Components, app_config: AppConfig
) -> None:
    scheduler_service.add_interval_job(
        components.pipeline.run_once,
        app_config.detection_interval_seconds,
        job_id=DETECTION_JOB_ID,
        name="NEO hazard detection",
    )
    scheduler_service.add_interval_job(
        components.consumer.drain,
        app_config.drain_interval_seconds,
        job_id=DRAIN_JOB_ID,
        name="Hazard event drain",
    )
    scheduler_service.add_interval_job(
        components.dispatcher.run_alert_cycle,
        app_config.dispatch_interval_seconds,
        job_id=DISPATCH_JOB_ID,
        name="Alert email dispatch",
    )


def main(argv=None) -> int:
    """
    Main entry point for the NEO hazard alert service.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    parser = argparse.ArgumentParser(
        description="NEO Alerts - near-Earth object hazard detection and email alerting service"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Run one detection, drain and dispatch cycle immediately and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )

    args = parser.parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "NEO Alerts starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "manual_run": args.manual_run,
            },
        )

        init_database(env_config.database_url)

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "recipient_count": len(app_config.recipients),
                "enabled_recipient_count": len(app_config.get_enabled_recipients()),
                "detection_interval_seconds": app_config.detection_interval_seconds,
                "drain_interval_seconds": app_config.drain_interval_seconds,
                "dispatch_interval_seconds": app_config.dispatch_interval_seconds,
                "topic": app_config.messaging.topic,
            },
        )

        components = build_components(app_config, env_config)
        feed_available = components.feed_client.check_health()

        logger.info(
            "Services initialized",
            extra={"event": "services.initialized", "feed_available": feed_available},
        )

        if args.manual_run:
            try:
                exit_code = run_manual(components)
            finally:
                components.close()
                close_database()

            logger.info(
                "NEO Alerts stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )
            return exit_code

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(shutdown_event=shutdown_event)
        schedule_jobs(scheduler_service, components, app_config)

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()

        logger.info(
            "Scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "service.keyboard_interrupt"},
            )
            scheduler_service.shutdown(wait=False)
        finally:
            components.close()
            close_database()

        logger.info(
            "NEO Alerts stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
