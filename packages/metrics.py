import threading
from collections import defaultdict


_lock = threading.Lock()
_counters = defaultdict(int)
_durations = defaultdict(float)


def inc(name: str, value: int = 1) -> None:
    with _lock:
        _counters[name] += value


def observe(name: str, value: float) -> None:
    with _lock:
        _durations[name] += value


def snapshot() -> tuple[dict, dict]:
    with _lock:
        return dict(_counters), dict(_durations)


def reset() -> None:
    with _lock:
        _counters.clear()
        _durations.clear()


def render_text() -> str:
    """Prometheus-style exposition of the current counters and duration sums."""
    counters, durations = snapshot()
    lines = [f"{name} {value}" for name, value in sorted(counters.items())]
    lines.extend(f"{name}_sum {value}" for name, value in sorted(durations.items()))
    return "\n".join(lines) + "\n"
