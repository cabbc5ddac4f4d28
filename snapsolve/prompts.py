"""Prompt templates for the extraction and solution stages."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schema import ProblemInfo


def build_extraction_prompt(language: str) -> str:
    """
    Build the prompt that turns screenshots into a structured problem.

    Args:
        language: Preferred programming language for the eventual solution

    Returns:
        Prompt text sent alongside the screenshot images
    """
    return f"""You are an algorithm engineer. Analyse the screenshots of this programming problem and extract the key information. The preferred programming language is {language}.

Return a single JSON object with these fields:
{{
  "title": "short problem title",
  "description": "full problem statement",
  "constraints": ["each constraint as a separate string"],
  "examples": [{{"input": "...", "output": "...", "explanation": "..."}}],
  "function_signature": "signature shown in the screenshot, if any"
}}

Return only the JSON object, without any surrounding text."""


def build_solution_prompt(problem: "ProblemInfo", language: str) -> str:
    """
    Build the prompt that asks for an interview-style solution.

    Args:
        problem: Problem extracted by the previous stage
        language: Language the code must be written in

    Returns:
        Prompt text (no images are sent with it)
    """
    return f"""As the candidate in a coding interview, solve this programming problem:
{problem.for_prompt()}

Answer the way a strong candidate would in a real interview. Use only the standard library of the language, no third-party APIs. Return strictly the following JSON format:

{{
  "code": "complete implementation in {language}",
  "thoughts": [
    "1. Understanding the problem: ...",
    "2. Approach: ...",
    "3. Optimisation: ...",
    "4. Edge cases: ..."
  ],
  "time_complexity": "time complexity with its derivation",
  "space_complexity": "space complexity with its derivation"
}}

Make sure that:
1. "code" contains a complete, runnable implementation
2. "thoughts" covers understanding, approach, optimisation and edge cases
3. complexity analysis shows the derivation, not just the result

Return the JSON string directly, with no other explanation."""


__all__ = ["build_extraction_prompt", "build_solution_prompt"]
