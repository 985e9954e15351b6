from __future__ import annotations

import json

try:
    from anthropic import Anthropic as _Anthropic
except ImportError:
    _Anthropic = None  # type: ignore[assignment,misc]

from prinsight_core.providers.base import BaseProvider

# Claude has no response-schema parameter, so the schema is passed as the input
# schema of a single forced tool and the tool input is returned as the JSON text.
_TOOL_NAME = "emit_structured_output"


class AnthropicProvider(BaseProvider):
    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str):
        if _Anthropic is None:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'prinsight[anthropic]'"
            )
        self.client = _Anthropic(api_key=api_key)

    def _call_api(self, system_prompt: str, user_prompt: str, schema: dict) -> str:
        response = self.client.messages.create(
            model=self.MODEL,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            tools=[
                {
                    "name": _TOOL_NAME,
                    "description": "Return the result as structured JSON.",
                    "input_schema": schema,
                }
            ],
            tool_choice={"type": "tool", "name": _TOOL_NAME},
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        for block in response.content:
            if getattr(block, "type", None) == "tool_use":
                return json.dumps(block.input)
        text_blocks = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        return "".join(text_blocks).strip()
