"""Structured content generation on top of an LLM provider.

One request per report, constrained to a fixed JSON schema. The response is
decoded and validated into a ReportContent; anything unusable raises a
GenerationError subclass. The QA prompt asks for 8-15 test scenarios but that
range is guidance to the model only and is not checked here.
"""

from __future__ import annotations

import json
import logging
import re

from prinsight_core.config import api_key_for
from prinsight_core.errors import MalformedResponseError
from prinsight_core.models import InsightData, PRSummary, ReportContent
from prinsight_core.prompts import Prompt
from prinsight_core.providers.anthropic import AnthropicProvider
from prinsight_core.providers.base import BaseProvider
from prinsight_core.providers.gemini import GeminiProvider
from prinsight_core.providers.openai import OpenAIProvider

logger = logging.getLogger(__name__)

_STRING_ARRAY = {"type": "array", "items": {"type": "string"}}

REPORT_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "summary": {"type": "string"},
        "sections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "content": {"type": "string"},
                    "items": _STRING_ARRAY,
                },
                "required": ["title", "content"],
            },
        },
        "recommendations": _STRING_ARRAY,
        "testScenarios": _STRING_ARRAY,
    },
    "required": ["title", "summary", "sections"],
}

INSIGHT_SEVERITIES = ("info", "warning", "error")

INSIGHTS_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "insights": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "type": {"type": "string"},
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "severity": {"type": "string", "enum": list(INSIGHT_SEVERITIES)},
                },
                "required": ["type", "title", "description", "severity"],
            },
        }
    },
    "required": ["insights"],
}

INSIGHTS_SYSTEM_PROMPT = """You are an expert software development analyst. Analyze the provided pull requests and generate actionable insights about the codebase health, potential risks, and recommendations.

Focus on:
1. Code quality and maintainability issues
2. Performance implications
3. Security concerns
4. Testing coverage needs
5. Breaking changes or compatibility issues
6. Development workflow patterns

For each insight, determine the severity level:
- "info": General observations or positive patterns
- "warning": Potential issues that should be monitored
- "error": Critical issues requiring immediate attention

Provide 3-5 most important insights.
"""  # noqa: E501

_MAX_INSIGHT_PRS = 10


def get_provider(config: dict) -> BaseProvider:
    model = config["model"]
    api_key = api_key_for(config)
    if model == "gemini":
        return GeminiProvider(api_key=api_key)
    if model == "anthropic":
        return AnthropicProvider(api_key=api_key)
    return OpenAIProvider(api_key=api_key)


def parse_json(raw: str):
    """Decode the model's JSON text, tolerating an outer ```json fence."""
    cleaned = re.sub(r"^```(?:json)?\s*", "", raw.strip())
    cleaned = re.sub(r"\s*```$", "", cleaned.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse model response as JSON: %s", raw[:200])
        raise MalformedResponseError(f"Model response is not valid JSON: {e}") from e


def generate_report(
    provider: BaseProvider,
    system_prompt: str,
    user_prompt: str,
    schema: dict = REPORT_SCHEMA,
) -> ReportContent:
    raw = provider.complete(system_prompt, user_prompt, schema)
    return ReportContent.from_dict(parse_json(raw))


def build_insights_prompt(pull_requests: list[PRSummary]) -> Prompt:
    lines = []
    for pr in pull_requests[:_MAX_INSIGHT_PRS]:
        files = str(pr.changed_files) if pr.changed_files is not None else "Unknown"
        lines.append(f"PR #{pr.number}: {pr.title}\n- Status: {pr.status}\n- Author: {pr.author}\n- Files changed: {files}")
    summary = "\n\n".join(lines)
    user_prompt = f"""Analyze these recent pull requests and provide insights:

{summary}

Generate insights that will help the development team improve code quality and catch potential issues.
"""
    return Prompt(INSIGHTS_SYSTEM_PROMPT, user_prompt)


def generate_insights(provider: BaseProvider, pull_requests: list[PRSummary]) -> list[InsightData]:
    """Ask the model for 3-5 insights about the most recent pull requests."""
    if not pull_requests:
        return []

    prompt = build_insights_prompt(pull_requests)
    data = parse_json(provider.complete(prompt.system_prompt, prompt.user_prompt, INSIGHTS_SCHEMA))
    if not isinstance(data, dict) or not isinstance(data.get("insights", []), list):
        raise MalformedResponseError("Missing or invalid required field: 'insights'")

    insights = []
    for idx, raw in enumerate(data.get("insights", [])):
        if not isinstance(raw, dict) or not all(isinstance(raw.get(k), str) for k in ("type", "title", "description")):
            raise MalformedResponseError(f"insights[{idx}] is missing required fields")
        severity = raw.get("severity")
        if severity not in INSIGHT_SEVERITIES:
            logger.debug("Coercing unknown insight severity %r to 'info'", severity)
            severity = "info"
        insights.append(
            InsightData(type=raw["type"], title=raw["title"], description=raw["description"], severity=severity)
        )
    return insights
