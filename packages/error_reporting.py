import logging
import os

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def init_error_reporting(service_name: str) -> bool:
    """Send ERROR logs and uncaught exceptions to Sentry when a DSN is configured."""
    dsn = os.getenv("LEADERBOARD_SENTRY_DSN")
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("LEADERBOARD_ENV", os.getenv("RUN_MODE", "prod")),
        release=os.getenv("LEADERBOARD_RELEASE"),
        traces_sample_rate=_float_env("LEADERBOARD_SENTRY_TRACES_SAMPLE_RATE", 0.0),
        integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
        send_default_pii=False,
    )
    sentry_sdk.set_tag("service", service_name)
    return True
