"""Unit tests for prompt rendering."""

from app.services.insights.prompts import (
    OUTPUT_CONTRACT_VERSION,
    TEMPLATES,
    build_prompt,
    system_instruction,
)
from app.services.insights.rubrics import RUBRICS
from app.services.insights.types import RubricContext, RubricKind


def _security_context(commit_count: int = 3) -> RubricContext:
    return RubricContext(
        kind=RubricKind.SECURITY,
        payload={
            "repositories": [{"name": "api", "language": "Python"}],
            "recent_commits": [{"message": f"commit {i}"} for i in range(commit_count)],
            "pull_requests": [],
        },
    )


class TestBuildPrompt:
    def test_identical_inputs_give_identical_prompts(self):
        assert build_prompt(RubricKind.SECURITY, _security_context()) == build_prompt(
            RubricKind.SECURITY, _security_context()
        )

    def test_sample_lists_are_truncated(self):
        prompt = build_prompt(RubricKind.SECURITY, _security_context(commit_count=25))

        assert "commit 9" in prompt
        assert "commit 10" not in prompt

    def test_contains_focus_and_contract(self):
        prompt = build_prompt(RubricKind.SECURITY, _security_context())

        assert "Identify:" in prompt
        assert "1. CRITICAL VULNERABILITIES" in prompt
        assert f"(v{OUTPUT_CONTRACT_VERSION})" in prompt
        assert '"security_score": 0.0-1.0' in prompt

    def test_missing_values_render_as_na(self):
        context = RubricContext(
            kind=RubricKind.RELEASE_PREDICTION,
            payload={"last_release": None, "releases": []},
        )

        prompt = build_prompt(RubricKind.RELEASE_PREDICTION, context)

        assert "Last release: N/A" in prompt
        assert "Release history: []" in prompt

    def test_scalars_render_plainly(self):
        context = RubricContext(
            kind=RubricKind.PIPELINE_HEALTH,
            payload={"workflow_count": 3, "success_rate_percent": 75},
        )

        prompt = build_prompt(RubricKind.PIPELINE_HEALTH, context)

        assert "Configured workflows: 3" in prompt
        assert "Success rate (%): 75" in prompt

    def test_every_rubric_renders_from_empty_payload(self):
        for kind in RubricKind:
            prompt = build_prompt(kind, RubricContext(kind=kind))
            assert prompt.startswith(TEMPLATES[kind].task)


class TestSystemInstruction:
    def test_persona_comes_from_registry(self):
        for kind, spec in RUBRICS.items():
            assert system_instruction(kind) == spec.persona
