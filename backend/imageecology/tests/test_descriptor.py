"""Tests for descriptor assembly, asset records and enrichment write-back."""

from __future__ import annotations

import pytest
from conftest import stored_resource, vision_payload
from pydantic import ValidationError as PydanticValidationError

from imageecology.agents.descriptor import (
    UNTITLED,
    asset_record,
    assemble,
    context_from_vision,
    display_title,
    resource_containers,
)
from imageecology.core.fields import LIST_FIELDS, coerce_list, render_list
from imageecology.core.models import ImageDescriptor, VisionDescriptor


class TestAssemble:
    """Descriptor assembly from raw containers."""

    def test_scalars_and_lists_from_mixed_key_schemes(self):
        context = {
            "aiSubject": "lamp",
            "ai_setting": "kitchen",
            "ai_vibe": "moody, warm",
            "mustKeep": '["brass base", "green shade"]',
        }
        metadata = {"medium": "photo", "objects": ["cup", " ", "spoon"]}

        d = assemble([context, metadata])

        assert d.subject == "lamp"
        assert d.setting == "kitchen"
        assert d.medium == "photo"
        assert d.vibe == ["moody", "warm"]
        assert d.objects == ["cup", "spoon"]
        assert d.must_keep == ["brass base", "green shade"]
        assert d.people == []
        assert d.lighting is None

    def test_title_prefers_ai_title_then_caption(self):
        assert assemble([{"aiTitle": "AI title", "caption": "Human"}]).title == "AI title"
        assert assemble([{"caption": "Human caption"}]).title == "Human caption"

    def test_title_falls_back_to_stored_title_then_path_tail(self):
        assert assemble([{"title": "Stored"}]).title == "Stored"
        assert assemble([{}], "imageEcology/sunset_42").title == "sunset_42"
        assert assemble([{}]).title == UNTITLED

    def test_alt_text_falls_back_to_description(self):
        assert assemble([{"alt": "a lamp"}]).alt_text == "a lamp"
        assert assemble([{"description": "a lamp in rain"}]).alt_text == "a lamp in rain"

    def test_blank_fields_are_absent(self):
        d = assemble([{"aiSubject": "   ", "ai_vibe": " , ,"}])
        assert d.subject is None
        assert d.vibe == []

    def test_descriptor_is_immutable(self):
        d = assemble([{"subject": "lamp"}])
        with pytest.raises(PydanticValidationError):
            d.subject = "other"
        assert d.subject == "lamp"

    def test_round_trip_through_rendered_lists(self):
        """Render list fields comma-joined, re-assemble, same normalized lists."""
        original = assemble(
            [{"ai_vibe": '["moody", " warm "]', "objects": "cup, spoon", "mustKeep": ["lamp", "rain"]}]
        )
        rendered = {f"ai_{f}": render_list(getattr(original, f)) for f in LIST_FIELDS}
        again = assemble([rendered])
        for f in LIST_FIELDS:
            assert getattr(again, f) == getattr(original, f)
            assert coerce_list(render_list(getattr(original, f))) == getattr(original, f)

    def test_wire_shape_uses_legacy_keys(self):
        wire = assemble([{"alt": "x", "ai_so_me_type": "meme", "must_keep": "a"}]).to_wire()
        assert wire["altText"] == "x"
        assert wire["so_me_type"] == "meme"
        assert wire["must_keep"] == ["a"]


class TestDisplayTitle:
    def test_caption_casing_variant(self):
        assert display_title([{"Caption": "Big"}]) == "Big"

    def test_context_before_metadata(self):
        assert display_title([{"caption": "ctx"}, {"caption": "meta"}]) == "ctx"


class TestAssetRecord:
    """Search resource to list record."""

    def test_record_fields(self):
        resource = stored_resource(
            "imageEcology/lamp",
            caption="Lamp",
            alt="lamp on sill",
            ai_vibe="moody, warm",
            ai_style="film still",
            community="night owls",
            parentIds="a,b",
        )
        record = asset_record(resource, "demo")

        assert record["url"].endswith("imageEcology/lamp.jpg")
        assert record["publicId"] == "imageEcology/lamp"
        assert record["title"] == "Lamp"
        assert record["alt"] == "lamp on sill"
        assert record["aiVibe"] == "moody, warm"
        assert record["aiStyle"] == "film still"
        assert record["community"] == "night owls"
        assert record["parentIds"] == "a,b"
        assert record["tags"] == ["old"]
        assert record["descriptor"]["vibe"] == ["moody", "warm"]

    def test_url_built_when_secure_url_missing(self):
        resource = {"public_id": "imageEcology/x", "format": "png"}
        record = asset_record(resource, "demo")
        assert record["url"] == "https://res.cloudinary.com/demo/image/upload/imageEcology/x.png"
        assert record["title"] == "x"

    def test_containers_context_then_metadata(self):
        resource = {"context": {"custom": {"a": "1"}}, "metadata": {"b": "2"}}
        assert resource_containers(resource) == [{"a": "1"}, {"b": "2"}]
        assert resource_containers({}) == [{}, {}]


class TestContextFromVision:
    """Enrichment write-back form."""

    def test_written_context_reads_back(self):
        vision = VisionDescriptor.model_validate(vision_payload())
        context = context_from_vision(vision, "My lamp", community="owls", parent_ids="p1,p2")

        assert context["caption"] == "My lamp"
        assert context["alt"] == vision.alt_text
        assert context["ai_must_keep"] == '["brass lamp", "rain streaks", "window frame"]'
        assert context["ai_people"] == "[]"

        d = assemble([context])
        assert d.title == vision.title
        assert d.must_keep == vision.must_keep
        assert d.vibe == vision.vibe
        assert d.alt_text == vision.alt_text
        assert d.so_me_type == vision.so_me_type
        assert d.trend is None

    def test_vision_to_descriptor(self):
        d = VisionDescriptor.model_validate(vision_payload()).to_descriptor()
        assert isinstance(d, ImageDescriptor)
        assert d.alt_text == "Brass lamp on a rainy windowsill"
        assert d.must_keep == ["brass lamp", "rain streaks", "window frame"]

    def test_entries_with_commas_survive_write_back(self):
        vision = VisionDescriptor.model_validate(
            vision_payload(must_keep=["red, white scarf", "lamp", "rain"], objects=["cup, saucer"])
        )
        d = assemble([context_from_vision(vision, "Scarf")])
        assert d.must_keep == ["red, white scarf", "lamp", "rain"]
        assert d.objects == ["cup, saucer"]

    def test_caption_only_written_when_given(self):
        vision = VisionDescriptor.model_validate(vision_payload())
        assert "caption" not in context_from_vision(vision, None)
        assert "caption" not in context_from_vision(vision, "   ")
        assert context_from_vision(vision, " Mine ")["caption"] == "Mine"


def test_record_list_mirrors_are_comma_joined():
    resource = stored_resource("imageEcology/a", ai_vibe='["moody", "warm"]', ai_objects="cup")
    record = asset_record(resource, "demo")
    assert record["aiVibe"] == "moody, warm"
    assert record["aiObjects"] == "cup"
    assert record["aiPeople"] is None
    assert record["caption"] is None
