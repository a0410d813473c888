"""Number and time formatting for the terminal tables."""
import time
from datetime import datetime
from typing import List, Optional, Sequence

SPARK_BLOCKS = "▁▂▃▄▅▆▇█"


def format_price(price: float) -> str:
    """Thousands-separated integer from 1,000 up, two decimals below."""
    if price >= 1000:
        return f"{int(price):,}"
    return f"{price:.2f}"


def format_change(change: float) -> str:
    return f"+{change:.0f}" if change >= 0 else f"{change:.0f}"


def format_percent(pct: float) -> str:
    return f"+{pct:.2f}%" if pct >= 0 else f"{pct:.2f}%"


def format_compact(value: float) -> str:
    """1234567 -> 1.23M. Sign is dropped; see format_pl."""
    value = abs(value)
    for threshold, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K")):
        if value >= threshold:
            return f"{value / threshold:.2f}{suffix}"
    return f"{value:.0f}"


def format_pl(pl: float) -> str:
    return ("+" if pl >= 0 else "-") + format_compact(pl)


def format_optional(value: Optional[float], fmt: str = "{:.2f}") -> str:
    return fmt.format(value) if value is not None else "-"


def truncate(text: str, max_len: int) -> str:
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return text[: max_len - 3] + "..."


def format_relative_time(unix_ts: int, now: Optional[float] = None) -> str:
    if unix_ts <= 0:
        return ""
    elapsed = int((time.time() if now is None else now) - unix_ts)
    if elapsed < 60:
        return "just now"
    minutes, hours, days = elapsed // 60, elapsed // 3600, elapsed // 86400
    if days > 0:
        return f"{days}d ago"
    if hours > 0:
        return f"{hours}h ago"
    return f"{minutes}m ago"


def format_timestamp(unix_ts: int) -> str:
    if unix_ts <= 0:
        return "-"
    return datetime.fromtimestamp(unix_ts).strftime("%Y-%m-%d %H:%M")


def sparkline(values: Sequence[float], width: int) -> str:
    """Resample values to `width` points and draw them with block characters."""
    if not values or width <= 0:
        return ""
    if len(values) > width:
        step = len(values) / width
        values = [values[int(i * step)] for i in range(width)]
    low, high = min(values), max(values)
    span = high - low
    chars: List[str] = []
    for v in values:
        level = 0 if span == 0 else int((v - low) / span * (len(SPARK_BLOCKS) - 1))
        chars.append(SPARK_BLOCKS[level])
    return "".join(chars)


def bar(fraction: float, width: int) -> str:
    filled = max(0, min(width, round(fraction * width)))
    return "█" * filled + "░" * (width - filled)
