"""Prompt construction for audience-specific reports.

Everything here is a pure function of its inputs: no I/O, no clock, no
randomness. The same PR data, audience and template always produce
byte-identical prompts.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from prinsight_core.models import PRDetails, RepositoryAggregate

AUDIENCES = ("pm", "qa", "client")

# Repository-scope report type -> the audience whose prompt and templates it uses.
REPOSITORY_REPORT_AUDIENCES = {
    "mvp_summary": "pm",
    "client_overview": "client",
    "qa_overview": "qa",
}

NO_DIFF_MARKER = "No diff available"
TEMPLATE_PROMPT_KEY = "systemPrompt"
_MAX_REPOSITORY_PRS = 10

_BASE_PROMPT = """You are an expert technical analyst specializing in pull request analysis and documentation.
Generate a comprehensive, professional report based on the provided pull request data.
"""

_AUDIENCE_PROMPTS = {
    "pm": """
Focus on PROJECT MANAGEMENT perspective:
- Business impact and feature delivery
- Timeline implications
- Resource allocation insights
- Risk assessment for project delivery
- User-facing changes and their impact
- Dependencies and blockers
- Integration with project milestones

Structure the report with:
- Executive summary highlighting business value
- Feature impact analysis
- Timeline and resource considerations
- Risk mitigation strategies
- Stakeholder communication points
""",
    "qa": """
Focus on QUALITY ASSURANCE perspective:
- Detailed test scenarios and test cases
- Edge cases and boundary conditions
- Integration testing requirements
- Performance testing considerations
- Security testing implications
- Regression testing scope
- User acceptance testing scenarios

IMPORTANT: Always include a comprehensive "testScenarios" array with 8-15 specific, actionable test cases.

Structure the report with:
- Testing strategy overview
- Functional testing requirements
- Non-functional testing considerations
- Test environment setup needs
- Risk-based testing prioritization
""",
    "client": """
Focus on CLIENT/STAKEHOLDER perspective:
- Business value and user benefits
- User experience improvements
- Feature functionality overview
- Impact on existing workflows
- Performance and reliability improvements
- Future roadmap alignment
- Success metrics and outcomes

Structure the report with:
- Business value summary
- User impact analysis
- Feature overview in business terms
- Expected outcomes and benefits
- Next steps and future enhancements
""",
}

_GENERIC_PROMPT = """
Provide a balanced technical and business perspective suitable for a general technical audience.
"""


@dataclass(frozen=True)
class Prompt:
    system_prompt: str
    user_prompt: str


def builtin_system_prompt(audience: str) -> str:
    """Return the built-in system prompt for an audience, or the generic one."""
    return _BASE_PROMPT + _AUDIENCE_PROMPTS.get(audience, _GENERIC_PROMPT)


def template_override(template: Mapping | None) -> str | None:
    """Return the template's override system prompt, or None if it has none."""
    if not template:
        return None
    override = template.get(TEMPLATE_PROMPT_KEY)
    if isinstance(override, str) and override.strip():
        return override
    return None


def resolve_system_prompt(audience: str, template: Mapping | None = None) -> str:
    """A non-empty template override wins verbatim; otherwise the built-in audience prompt."""
    return template_override(template) or builtin_system_prompt(audience)


def _fmt_time(value: datetime | None) -> str:
    return value.isoformat() if value is not None else "n/a"


def build_pr_prompt(
    details: PRDetails,
    audience: str,
    template: Mapping | None = None,
    max_patch_chars: int | None = None,
) -> Prompt:
    """Build the system and user prompts for a single pull request."""
    file_lines = "".join(
        f"\n- {f.filename} ({f.status})\n  - +{f.additions} -{f.deletions}\n" for f in details.files
    )
    patches = []
    for f in details.files:
        if not f.patch:
            continue
        patch = f.patch
        if max_patch_chars is not None and len(patch) > max_patch_chars:
            patch = patch[:max_patch_chars] + "\n... [diff truncated]"
        patches.append(patch)
    code_changes = "\n\n".join(patches) or NO_DIFF_MARKER

    user_prompt = f"""Analyze the following pull request and generate a comprehensive report:

**Pull Request Information:**
- Title: {details.title}
- Author: {details.author}
- State: {details.status}
- Files Changed: {details.changed_files}
- Additions: {details.additions}
- Deletions: {details.deletions}

**Changed Files:**
{file_lines}
**Code Changes:**
{code_changes}

Generate a detailed report following the system instructions.
"""
    return Prompt(resolve_system_prompt(audience, template), user_prompt)


def build_repository_prompt(
    aggregate: RepositoryAggregate,
    audience: str,
    template: Mapping | None = None,
) -> Prompt:
    """Build prompts for a whole-repository report.

    Lists aggregate PR counts, the contributor count and up to ten of the most
    recently updated pull requests.
    """
    recent = sorted(aggregate.pull_requests, key=lambda pr: (pr.updated_at, pr.number), reverse=True)
    recent = recent[:_MAX_REPOSITORY_PRS]

    pr_lines = []
    for pr in recent:
        line = f"- PR #{pr.number}: {pr.title} (author: {pr.author}, status: {pr.status}"
        if pr.review_status:
            line += f", review: {pr.review_status}"
        line += f", updated: {_fmt_time(pr.updated_at)}"
        if pr.merged_at is not None:
            line += f", merged: {_fmt_time(pr.merged_at)}"
        pr_lines.append(line + ")")
    pr_section = "\n".join(pr_lines) or "No pull requests recorded."

    user_prompt = f"""Analyze the following repository activity and generate a comprehensive report:

**Repository Information:**
- Name: {aggregate.name}
- Full Name: {aggregate.full_name}
- Total Pull Requests: {aggregate.total_prs}
- Open: {aggregate.count_status("open")}
- Closed: {aggregate.count_status("closed")}
- Merged: {aggregate.count_status("merged")}
- Contributors: {aggregate.contributors}
- Last Activity: {_fmt_time(aggregate.last_activity)}

**Most Recently Updated Pull Requests:**
{pr_section}

Generate a detailed report following the system instructions.
"""
    return Prompt(resolve_system_prompt(audience, template), user_prompt)
