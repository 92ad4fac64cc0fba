"""Prompt utilities for commit planning.

Contains:
- SYSTEM_PROMPT: System prompt for plan generation
- CORRECTION_SYSTEM_PROMPT: System prompt for the single correction attempt
- PromptContext: Repository metadata shown to the model
- build_plan_prompt: Build the user prompt for plan generation
- build_correction_prompt: Build the prompt listing violated rules
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from atomc.config import DiffMode
from atomc.plan.models import BODY_MAX_LINES, SUMMARY_MAX_CHARS, SUMMARY_MIN_CHARS, CommitType

_COMMIT_TYPES = "|".join(t.value for t in CommitType)


SYSTEM_PROMPT = f"""You are a local commit planning assistant.
Return a single JSON object that matches the CommitPlan schema.
Do not include Markdown, comments, or any extra text.
Follow atomic commit rules:
- Each commit must do exactly one thing.
- Split unrelated concerns into separate commits.
- Foundations first, integrations last.
- Avoid bundling refactors with feature changes.
- Each file belongs to exactly one commit.
Commit message rules:
- Use conventional commits: type[scope]: summary
- Scope is required unless the change is truly global.
- Summary is imperative, {SUMMARY_MIN_CHARS}-{SUMMARY_MAX_CHARS} chars.
- Body is 1-{BODY_MAX_LINES} short lines (no leading hyphens).
If any required field is unknown, infer the best value."""


CORRECTION_SYSTEM_PROMPT = """You are a local commit planning assistant fixing a rejected commit plan.

Your previous plan broke the rules listed by the user. Fix every listed rule
and keep the rest of the plan as close to the previous one as possible.

Return a single JSON object that matches the CommitPlan schema.
Do not include Markdown, comments, or any extra text."""


_OUTPUT_SCHEMA = f"""[OUTPUT SCHEMA]
{{
  "schema_version": "v1",
  "plan": [
    {{
      "id": "c1",
      "type": "<{_COMMIT_TYPES}>",
      "scope": "<kebab-case scope or null>",
      "summary": "<imperative, {SUMMARY_MIN_CHARS}-{SUMMARY_MAX_CHARS} chars, WITHOUT type/scope prefix>",
      "body": ["<1-{BODY_MAX_LINES} plain lines>"],
      "files": ["<repo-relative path from the diff>"],
      "hunks": []
    }}
  ],
  "warnings": []
}}"""


@dataclass
class PromptContext:
    """Repository metadata shown alongside the diff."""

    diff: str
    repo_path: Optional[Path] = None
    diff_mode: Optional[DiffMode] = None
    include_untracked: Optional[bool] = None
    git_status: Optional[str] = None


def build_plan_prompt(context: PromptContext) -> str:
    """Build the user prompt for plan generation.

    Args:
        context: Diff and repository metadata.

    Returns:
        User prompt string
    """
    repo_path = str(context.repo_path) if context.repo_path else ""
    diff_mode = context.diff_mode.value if context.diff_mode else ""
    include_untracked = (
        str(context.include_untracked).lower() if context.include_untracked is not None else ""
    )
    git_status = (context.git_status or "").strip()

    prompt = f"""You will be given a git diff and optional repo metadata.
Produce an atomic commit plan as JSON only.

Context:
- repo_path: {repo_path}
- diff_mode: {diff_mode}
- include_untracked: {include_untracked}
- git_status: {git_status}

{_OUTPUT_SCHEMA}

Diff:
{context.diff}"""

    return prompt


def build_correction_prompt(
    context: PromptContext,
    violations: list[str],
    previous_response: str,
) -> str:
    """Build a correction prompt after the previous plan was rejected.

    Args:
        context: Diff and repository metadata.
        violations: The specific rules the previous plan broke.
        previous_response: The rejected raw response.

    Returns:
        Correction prompt string
    """
    violations_text = "\n".join(f"  - {violation}" for violation in violations)

    prompt = f"""Your previous commit plan was rejected. Fix it.

[VIOLATED RULES]
{violations_text}

[YOUR PREVIOUS RESPONSE]
{previous_response.strip()}

[INSTRUCTIONS]
1. Fix ALL violated rules listed above
2. Use ONLY file paths that appear in the diff below
3. Put each file in exactly ONE commit
4. Do not start the summary with "type[scope]:" or "type(scope):"
5. Body lines are plain sentences: no "-", "*" or numbered markers, no labels like "Summary:"

{_OUTPUT_SCHEMA}

Diff:
{context.diff}"""

    return prompt
