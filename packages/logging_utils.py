import logging
import os

from .request_context import athlete_id_var, sync_run_id_var


def _stamp(record: logging.LogRecord) -> None:
    if not hasattr(record, "sync_run_id"):
        record.sync_run_id = sync_run_id_var.get() or "-"
    if not hasattr(record, "athlete_id"):
        record.athlete_id = athlete_id_var.get() or "-"


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.sync_run_id = sync_run_id_var.get() or "-"
        record.athlete_id = athlete_id_var.get() or "-"
        return True


class SafeFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        _stamp(record)
        return super().format(record)


LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "sync_run_id=%(sync_run_id)s athlete_id=%(athlete_id)s %(message)s"
)


def setup_logging(level: str | None = None) -> None:
    level = (level or os.getenv("LEADERBOARD_LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    # Every LogRecord gets the context fields so third-party handlers never fail.
    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        _stamp(record)
        return record

    logging.setLogRecordFactory(record_factory)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    root = logging.getLogger()
    root.addFilter(ContextFilter())
    formatter = SafeFormatter(LOG_FORMAT)
    for handler in root.handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
