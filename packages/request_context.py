from contextvars import ContextVar
from contextlib import contextmanager


sync_run_id_var: ContextVar[str | None] = ContextVar("sync_run_id", default=None)
athlete_id_var: ContextVar[str | None] = ContextVar("athlete_id", default=None)


@contextmanager
def sync_run_context(run_id: int | str | None):
    token = sync_run_id_var.set(str(run_id) if run_id is not None else None)
    try:
        yield
    finally:
        sync_run_id_var.reset(token)


@contextmanager
def athlete_context(athlete_id: int | str | None):
    token = athlete_id_var.set(str(athlete_id) if athlete_id is not None else None)
    try:
        yield
    finally:
        athlete_id_var.reset(token)
