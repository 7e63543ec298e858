# app/utils/text.py
from datetime import datetime, timezone
from typing import Optional

import mistune

_markdown = mistune.create_markdown(
    escape=True,
    plugins=["strikethrough", "table"],
)


# -----------------------------
# Markdown
# -----------------------------
def render_markdown(text: str) -> str:
    """LLM markdown -> HTML. Raw HTML in the source is escaped, never rendered."""
    return _markdown(text or "")


# -----------------------------
# Display helpers
# -----------------------------
def shorten(text: str, max_len: int = 80) -> str:
    s = " ".join((text or "").split())
    if len(s) <= max_len:
        return s
    return s[: max_len - 1].rstrip() + "…"


def _parse_sqlite_ts(value: str) -> Optional[datetime]:
    s = (value or "").strip()
    if not s:
        return None
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%dT%H:%M:%S"):
        try:
            return datetime.strptime(s, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def time_ago(value: str, *, now: Optional[datetime] = None) -> str:
    ts = _parse_sqlite_ts(value)
    if ts is None:
        return value or ""

    now = now or datetime.now(timezone.utc)
    secs = max(0, int((now - ts).total_seconds()))

    if secs < 45:
        return "less than a minute ago"
    mins = round(secs / 60)
    if mins < 60:
        return "1 minute ago" if mins == 1 else f"{mins} minutes ago"
    hours = round(secs / 3600)
    if hours < 24:
        return "about 1 hour ago" if hours == 1 else f"about {hours} hours ago"
    days = round(secs / 86400)
    if days < 30:
        return "1 day ago" if days == 1 else f"{days} days ago"
    months = round(days / 30)
    if months < 12:
        return "about 1 month ago" if months == 1 else f"{months} months ago"
    years = round(days / 365)
    return "about 1 year ago" if years == 1 else f"about {years} years ago"
