from __future__ import annotations

from typing import Any, Optional


def extract_latest_assistant_text(messages_list: Any) -> Optional[str]:
    """Return the first text block of the newest assistant message.

    ``messages_list`` is a list-messages payload ordered most-recent-first.
    Returns ``None`` when no assistant message or no non-empty text block exists.
    """
    data = messages_list.get("data") if isinstance(messages_list, dict) else None
    if not isinstance(data, list):
        return None

    assistant_msg = next(
        (m for m in data if isinstance(m, dict) and m.get("role") == "assistant"),
        None,
    )
    if assistant_msg is None:
        return None

    blocks = assistant_msg.get("content")
    for block in blocks if isinstance(blocks, list) else []:
        if not isinstance(block, dict) or block.get("type") != "text":
            continue
        text = block.get("text")
        value = text.get("value") if isinstance(text, dict) else None
        if value and isinstance(value, str):
            return value
    return None
