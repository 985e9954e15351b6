from __future__ import annotations

try:
    from google import genai as _genai
    from google.genai import types as _types
except ImportError:
    _genai = None  # type: ignore[assignment]
    _types = None  # type: ignore[assignment]

from prinsight_core.providers.base import BaseProvider


class GeminiProvider(BaseProvider):
    MODEL = "gemini-2.5-pro"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str):
        if _genai is None:
            raise ImportError(
                "The 'google-genai' package is required for this provider. "
                "Install it with: pip install 'prinsight[gemini]'"
            )
        self.client = _genai.Client(api_key=api_key)

    def _call_api(self, system_prompt: str, user_prompt: str, schema: dict) -> str:
        response = self.client.models.generate_content(
            model=self.MODEL,
            contents=user_prompt,
            config=_types.GenerateContentConfig(
                system_instruction=system_prompt,
                response_mime_type="application/json",
                response_json_schema=schema,
                temperature=self.TEMPERATURE,
                max_output_tokens=self.MAX_TOKENS,
            ),
        )
        return response.text or ""
