"""Base LLM provider implementing the Template Method pattern.

Every provider answers the same single-shot call:
    complete() → _call_api()   ← only this differs per provider
               → empty-response check

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call constrained to a JSON schema and
    return the text response

There is no conversation state and no retry: a failed call surfaces as a
GenerationError to the caller.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from prinsight_core.errors import EmptyResponseError, GenerationError, PRInsightError

logger = logging.getLogger(__name__)

_MAX_TOKENS = 8192


class BaseProvider(ABC):
    MODEL: str = ""
    TEMPERATURE: float = 0.3
    MAX_TOKENS: int = _MAX_TOKENS

    def complete(self, system_prompt: str, user_prompt: str, schema: dict) -> str:
        """Return the model's raw JSON text for one request."""
        name = self.__class__.__name__
        try:
            raw = self._call_api(system_prompt, user_prompt, schema)
        except PRInsightError:
            raise
        except Exception as e:
            logger.error("%s API call failed: %s", name, e)
            raise GenerationError(f"{name} API call failed: {e}") from e

        if not raw or not raw.strip():
            logger.error("%s returned an empty response", name)
            raise EmptyResponseError(f"Empty response from {name}")
        return raw

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str, schema: dict) -> str:
        """Make a single API call and return the raw text response.

        Should raise on failure; complete() wraps SDK errors.
        """
