"""Tests for model output parsing into ProblemInfo, SolutionPayload and DebugPayload."""

from snapsolve.prompts import build_extraction_prompt, build_solution_prompt
from snapsolve.schema import (
    DebugPayload,
    ProblemInfo,
    SolutionPayload,
    parse_json_object,
    strip_code_fence,
)


class TestParsing:
    """Tests for fence stripping and lenient JSON parsing."""

    def test_strip_json_fence(self):
        """```json fences are removed."""
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strip_bare_fence(self):
        """Bare ``` fences are removed."""
        assert strip_code_fence("```\n[]\n```") == "[]"

    def test_object_inside_prose(self):
        """An object surrounded by commentary is still found."""
        assert parse_json_object('Here you go: {"title": "x"} Good luck!') == {"title": "x"}

    def test_non_object_is_rejected(self):
        """Arrays and scalars are not objects."""
        assert parse_json_object("[1, 2]") is None

    def test_garbage(self):
        """Unparseable text yields None."""
        assert parse_json_object("no json here") is None


class TestProblemInfo:
    """Tests for ProblemInfo."""

    def test_structured(self):
        """Fenced JSON becomes structured data."""
        problem = ProblemInfo.from_text('```json\n{"title": "Two Sum"}\n```')

        assert problem.is_structured
        assert problem.data == {"title": "Two Sum"}
        assert problem.for_prompt() == '{"title": "Two Sum"}'

    def test_unstructured_keeps_raw(self):
        """Prose answers are kept verbatim."""
        problem = ProblemInfo.from_text("Find two numbers that add to target.")

        assert not problem.is_structured
        assert problem.for_prompt() == "Find two numbers that add to target."


class TestSolutionPayload:
    """Tests for SolutionPayload."""

    def test_full_answer(self):
        """All fields are read from the JSON answer."""
        solution = SolutionPayload.from_text(
            '{"code": "print(1)", "thoughts": ["a", "b"], '
            '"time_complexity": "O(1)", "space_complexity": "O(1)"}'
        )

        assert solution.code == "print(1)"
        assert solution.thoughts == ["a", "b"]
        assert solution.time_complexity == "O(1)"
        assert solution.space_complexity == "O(1)"

    def test_single_thought_string(self):
        """A string thought becomes a one-item list."""
        assert SolutionPayload.from_text('{"thoughts": "just one"}').thoughts == ["just one"]

    def test_unstructured_answer_becomes_code(self):
        """Non-JSON answers are surfaced as code."""
        solution = SolutionPayload.from_text("  def f(): pass  ")

        assert solution.code == "def f(): pass"
        assert solution.thoughts == []


class TestDebugPayload:
    """Tests for DebugPayload."""

    def test_defaults(self):
        """All fields are optional."""
        payload = DebugPayload.model_validate({})
        assert payload.new_code is None
        assert payload.thoughts == []


class TestPrompts:
    """Tests for prompt templates."""

    def test_extraction_prompt_mentions_language(self):
        """The preferred language is part of the extraction prompt."""
        assert "typescript" in build_extraction_prompt("typescript")

    def test_solution_prompt_embeds_problem(self):
        """The solution prompt carries the serialized problem and language."""
        prompt = build_solution_prompt(ProblemInfo.from_text('{"title": "Merge"}'), "cpp")

        assert '{"title": "Merge"}' in prompt
        assert "complete implementation in cpp" in prompt
