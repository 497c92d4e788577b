"""Input validation and history normalization."""

import re
from datetime import datetime, timezone
from typing import Any, List, Optional

from ..models import Message, MessageRole

USER_ID_PATTERN = re.compile(r"^[\w\-.:@]{1,128}$")

_ANONYMOUS_PREFIXES = ("client_", "ws_", "anonymous_", "guest_")
_ANONYMOUS_IDS = frozenset({"default_user", "unknown", "guest", "anonymous", "null", "none"})


def is_valid_user_id(user_id: Any) -> bool:
    """True for a safe string identifier."""
    return isinstance(user_id, str) and bool(USER_ID_PATTERN.fullmatch(user_id))


def is_persistent_user_id(user_id: Any) -> bool:
    """True when the id can be tied to a durable preference profile.

    Anonymous or temporary ids ("guest", "client_xxx", "anonymous", ...) are
    valid for a session but never get a memory store.
    """
    if not is_valid_user_id(user_id):
        return False
    uid = user_id.strip().lower()
    if uid in _ANONYMOUS_IDS:
        return False
    return not uid.startswith(_ANONYMOUS_PREFIXES)


def coerce_text(value: Any) -> str:
    """Message text or "" for anything that is not a string."""
    if isinstance(value, str):
        return value.strip()
    return ""


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Aware datetime from a datetime, epoch seconds or milliseconds, or an ISO string."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # epoch milliseconds are common in chat payloads
        seconds = value / 1000.0 if value > 1e11 else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _coerce_message(entry: Any) -> Optional[Message]:
    if isinstance(entry, Message):
        return entry
    if not isinstance(entry, dict):
        return None

    text = entry.get("text", entry.get("content"))
    if not isinstance(text, str):
        return None

    role = entry.get("role")
    if role is None:
        # {"sender": "ai"} / {"isUser": True} style payloads
        sender = str(entry.get("sender", "")).lower()
        if sender:
            role = "user" if sender == "user" else "assistant"
        elif "isUser" in entry:
            role = "user" if entry.get("isUser") else "assistant"
        else:
            role = "user"
    role = str(role).lower()
    if role in ("ai", "bot", "model", "system"):
        role = "assistant"
    if role not in (MessageRole.USER.value, MessageRole.ASSISTANT.value):
        return None

    data = {"text": text, "role": role}
    ts = parse_timestamp(entry.get("timestamp"))
    if ts is not None:
        data["timestamp"] = ts
    if entry.get("user_state") is not None:
        data["user_state"] = entry["user_state"]
    try:
        return Message.model_validate(data)
    except ValueError:
        return None


def normalize_history(history: Any, window: Optional[int] = None) -> List[Message]:
    """Ordered list of valid messages; malformed entries are skipped.

    Never raises. When ``window`` is given only the trailing ``window``
    entries are returned. The caller's sequence is not modified.
    """
    if not isinstance(history, (list, tuple)):
        return []
    messages = [m for m in (_coerce_message(e) for e in history) if m is not None]
    if window is not None and window > 0:
        messages = messages[-window:]
    return messages


def user_turns(messages: List[Message]) -> List[Message]:
    return [m for m in messages if m.role == MessageRole.USER]


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return low
    if value != value:  # NaN
        return low
    return max(low, min(high, value))
