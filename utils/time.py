# utils/time.py
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_interval(value) -> float:
    """
    Duration in seconds from "250ms" / "1s" / "5m" / "1h" or a plain number.
    """
    if isinstance(value, bool):
        raise ValueError(f"unknown interval: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        s = str(value).strip().lower()
        if not s:
            raise ValueError("empty interval")
        try:
            if s.endswith("ms"):
                seconds = float(s[:-2]) / 1000
            elif s.endswith("s"):
                seconds = float(s[:-1])
            elif s.endswith("m"):
                seconds = float(s[:-1]) * 60
            elif s.endswith("h"):
                seconds = float(s[:-1]) * 3600
            else:
                seconds = float(s)
        except ValueError:
            raise ValueError(f"unknown interval: {value!r}") from None
    if seconds < 0:
        raise ValueError(f"negative interval: {value!r}")
    return seconds
