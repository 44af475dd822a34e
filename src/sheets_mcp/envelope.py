"""Uniform tool reply: human-readable text plus the structured payload."""

import json
from typing import Any, Dict

from pydantic import BaseModel


def respond_with(content: Any) -> Dict[str, Any]:
    """
    Wrap a tool result in the MCP content envelope.

    Strings are used verbatim as the text form; anything else is pretty-printed
    as JSON. The structured payload is always carried alongside the text.
    """
    if isinstance(content, BaseModel):
        content = content.model_dump()

    if isinstance(content, str):
        text = content
    else:
        text = json.dumps(content, indent=2, ensure_ascii=False)

    return {
        "content": [{"type": "text", "text": text}],
        "structuredContent": content,
    }
