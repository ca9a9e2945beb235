"""Tests for remix plan synthesis and local schema enforcement."""

from __future__ import annotations

import json

import pytest
from conftest import FakeLLM, plan_payload

from imageecology.agents.planning import (
    REMIX_PLAN_SCHEMA,
    build_plan_instructions,
    parse_plan,
    select_parents,
    summarize_parent,
    synthesize_plan,
)
from imageecology.core.errors import SchemaViolation, ValidationError
from imageecology.core.models import ImageDescriptor, RemixContext, RemixParent


def parent(url: str, **descriptor) -> RemixParent:
    return RemixParent(url=url, descriptor=ImageDescriptor(**descriptor) if descriptor else None)


@pytest.fixture
def parents():
    return [
        parent("https://img/1.jpg", subject="lamp", must_keep=["brass lamp"], objects=["desk"]),
        parent("https://img/2.jpg", subject="ship", must_keep=["ship's wheel"], vibe=["salty"]),
    ]


class TestSelectParents:
    def test_rejects_single_parent(self):
        with pytest.raises(ValidationError, match="at least 2"):
            select_parents([parent("a")])

    def test_truncates_in_order(self):
        many = [parent(f"p{i}") for i in range(20)]
        kept = select_parents(many, limit=16)
        assert [p.url for p in kept] == [f"p{i}" for i in range(16)]


class TestSynthesizePlan:
    """Plan synthesis against a scripted LLM."""

    def test_single_parent_makes_no_llm_call(self):
        llm = FakeLLM()
        with pytest.raises(ValidationError):
            synthesize_plan(llm, [parent("a")], RemixContext(), 0.5)
        assert llm.calls == []

    def test_valid_plan(self, parents):
        llm = FakeLLM()
        plan = synthesize_plan(llm, parents, RemixContext(adjectives="dreamy"), 0.7)

        assert plan.must_include == plan_payload()["must_include"]
        (system_prompt, user_prompt, schema), = llm.called("plan_remix")
        assert schema is REMIX_PLAN_SCHEMA
        assert "remixStrength=0.7" in user_prompt
        assert "- vibe/tags: dreamy" in user_prompt
        assert "brass lamp" in user_prompt
        assert "ship's wheel" in user_prompt

    def test_strength_is_clamped_before_prompting(self, parents):
        llm = FakeLLM()
        synthesize_plan(llm, parents, RemixContext(), 4.0)
        (_, user_prompt, _), = llm.called("plan_remix")
        assert "remixStrength=1.0" in user_prompt

    def test_missing_field_is_schema_violation(self, parents):
        payload = plan_payload()
        del payload["palette"]
        with pytest.raises(SchemaViolation) as exc:
            synthesize_plan(FakeLLM(plan=payload), parents, RemixContext(), 0.5)
        assert exc.value.schema_name == "RemixPlan"

    def test_must_include_below_minimum_is_schema_violation(self, parents):
        payload = plan_payload(must_include=["lamp", "wheel"])
        with pytest.raises(SchemaViolation):
            synthesize_plan(FakeLLM(plan=payload), parents, RemixContext(), 0.5)

    def test_non_json_is_schema_violation(self, parents):
        with pytest.raises(SchemaViolation):
            synthesize_plan(FakeLLM(plan="not json at all"), parents, RemixContext(), 0.5)


class TestParsePlan:
    def test_code_fenced_json_is_accepted(self):
        raw = "```json\n" + json.dumps(plan_payload()) + "\n```"
        assert parse_plan(raw).scene.startswith("A lighthouse")

    def test_extra_field_rejected(self):
        with pytest.raises(SchemaViolation):
            parse_plan(json.dumps(plan_payload(camera="85mm")))

    def test_wrong_type_rejected(self):
        with pytest.raises(SchemaViolation):
            parse_plan(json.dumps(plan_payload(avoid="text, collage")))

    def test_array_rejected(self):
        with pytest.raises(SchemaViolation, match="expected JSON object"):
            parse_plan("[]")


class TestInstructions:
    def test_summary_carries_anchors_and_fields(self):
        p = parent("u", subject="lamp", must_keep=["brass lamp"], objects=["desk", "cup"], vibe=["calm"])
        summary = summarize_parent(1, p)
        assert summary["index"] == 1
        assert summary["subject"] == "lamp"
        assert summary["setting"] == ""
        assert summary["anchors"] == ["brass lamp", "desk", "cup", "calm"]

    def test_summary_without_descriptor_uses_description(self):
        summary = summarize_parent(2, RemixParent(url="u", description="a red bicycle"))
        assert summary["description"] == "a red bicycle"
        assert summary["anchors"] == []

    def test_description_nested_in_descriptor_is_kept(self):
        p = RemixParent.model_validate({"url": "u", "descriptor": {"description": "a red bike"}})
        assert p.description == "a red bike"
        assert summarize_parent(1, p)["description"] == "a red bike"

    def test_top_level_description_wins(self):
        p = RemixParent.model_validate(
            {"url": "u", "description": "top", "descriptor": {"description": "nested"}}
        )
        assert p.description == "top"

    def test_context_lines_only_when_present(self):
        context = RemixContext(communities=["skaters"], trends="y2k, vaporwave", extraPrompt="at night")
        _, user = build_plan_instructions([], context, 0.3)
        assert "- community: skaters" in user
        assert "- trends: y2k, vaporwave" in user
        assert "- extra: at night" in user
        assert "vibe/tags" not in user
        assert user.rstrip().endswith("[]")

    def test_schema_is_strict(self):
        schema = REMIX_PLAN_SCHEMA["schema"]
        assert REMIX_PLAN_SCHEMA["strict"] is True
        assert schema["additionalProperties"] is False
        assert set(schema["required"]) == set(schema["properties"])
        assert schema["properties"]["must_include"]["minItems"] == 4
