"""Shared fixtures: fake LLM and storage providers, payloads, API client.

Nothing here touches the network; every provider call is served from
in-memory fakes that record what they were asked.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import pytest

from imageecology.clients.llm_interface import LLMClient


def vision_payload(**overrides: Any) -> dict[str, Any]:
    """A vision descriptor that satisfies the structured output schema."""
    payload = {
        "title": "Brass lamp at dusk",
        "caption": "A brass lamp glows on a windowsill. Rain streaks the glass.",
        "altText": "Brass lamp on a rainy windowsill",
        "subject": "brass table lamp",
        "setting": "windowsill in a small apartment",
        "medium": "35mm film photograph",
        "realism": "photorealistic",
        "lighting": "warm tungsten glow",
        "palette": "amber and slate",
        "composition": "centered close-up",
        "style": "moody film still, warm tungsten, amber and slate",
        "so_me_type": "aesthetic post",
        "trend": "",
        "feeling": "cozy",
        "tags": ["lamp", "rain", "Interior"],
        "vibe": ["moody", "cozy"],
        "objects": ["lamp", "window", "raindrops"],
        "scenes": ["interior"],
        "people": [],
        "must_keep": ["brass lamp", "rain streaks", "window frame"],
    }
    payload.update(overrides)
    return payload


def plan_payload(**overrides: Any) -> dict[str, Any]:
    """A remix plan that satisfies the RemixPlan schema."""
    payload = {
        "scene": "A lighthouse keeper's study floating above a rainy harbor",
        "subject": "brass lamp perched on a ship's wheel",
        "setting": "cloud harbor at dusk",
        "composition": "low angle, wide framing",
        "medium": "oil painting",
        "realism": "painterly realism",
        "lighting": "warm lamplight against cold rain",
        "palette": "amber, slate and teal",
        "style_notes": "thick impasto, visible brush strokes",
        "must_include": ["brass lamp", "ship's wheel", "rain streaks", "harbor lights"],
        "avoid": ["text", "collage"],
        "remix_directive": "Fuse the lamp and the wheel into one glowing instrument",
    }
    payload.update(overrides)
    return payload


class FakeLLM(LLMClient):
    """Scripted LLMClient; records every call it receives."""

    def __init__(
        self,
        vision: Any = None,
        plan: Any = None,
        prompt: str = '"a lighthouse made of books"',
        image_url: str | None = "https://images.example/generated.png",
    ):
        self.vision = vision_payload() if vision is None else vision
        self.plan = plan_payload() if plan is None else plan
        self.prompt = prompt
        self.image_url = image_url
        self.calls: list[tuple[str, tuple]] = []
        self.closed = False

    @staticmethod
    def _raw(value: Any) -> str:
        if isinstance(value, Exception):
            raise value
        return value if isinstance(value, str) else json.dumps(value)

    def describe_image(self, image_url, instructions, schema):
        self.calls.append(("describe_image", (image_url, instructions, schema)))
        return self._raw(self.vision)

    def plan_remix(self, system_prompt, user_prompt, schema):
        self.calls.append(("plan_remix", (system_prompt, user_prompt, schema)))
        return self._raw(self.plan)

    def write_prompt(self, instructions):
        self.calls.append(("write_prompt", (instructions,)))
        return self.prompt

    def generate_image(self, prompt, size="1024x1024"):
        self.calls.append(("generate_image", (prompt, size)))
        return self.image_url

    def close(self):
        self.closed = True

    def called(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]


class FakeStorage:
    """In-memory stand-in for CloudinaryClient."""

    def __init__(self, resources: list[dict[str, Any]] | None = None, moderation: list | None = None):
        self.config = SimpleNamespace(cloud_name="demo", folder="imageEcology")
        self.resources = resources or []
        self.moderation = moderation or [{"kind": "aws_rek", "status": "approved"}]
        self.uploads: list[dict[str, Any]] = []
        self.updates: list[dict[str, Any]] = []
        self.searches: list[dict[str, Any]] = []
        self.fail_updates_for: set[str] = set()
        self.closed = False

    def upload(self, file_url, context=None, tags=None, folder=None, moderate=True):
        public_id = f"imageEcology/upload{len(self.uploads) + 1}"
        self.uploads.append({"file": file_url, "context": dict(context or {}), "tags": tags})
        return {
            "public_id": public_id,
            "secure_url": f"https://res.cloudinary.com/demo/image/upload/{public_id}.png",
            "moderation": self.moderation,
        }

    def update_metadata(self, public_id, context, tags=None):
        if public_id in self.fail_updates_for:
            raise RuntimeError(f"explicit failed for {public_id}")
        self.updates.append({"public_id": public_id, "context": dict(context), "tags": tags})
        return {"public_id": public_id}

    def search_folder(self, folder=None, max_results=10):
        self.searches.append({"folder": folder, "max_results": max_results})
        return self.resources[:max_results]

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def stored_resource(public_id: str, **context: Any) -> dict[str, Any]:
    """Search API resource with ``context.custom`` set to ``context``."""
    return {
        "public_id": public_id,
        "asset_id": f"asset-{public_id}",
        "secure_url": f"https://res.cloudinary.com/demo/image/upload/{public_id}.jpg",
        "created_at": "2024-05-01T10:00:00Z",
        "width": 1024,
        "height": 768,
        "folder": "imageEcology",
        "tags": ["old"],
        "context": {"custom": context},
        "metadata": {},
    }


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def api_client(fake_llm, fake_storage, monkeypatch):
    """TestClient with providers replaced by fakes and rate limiting off."""
    from fastapi.testclient import TestClient

    from imageecology.api import routes
    from imageecology.main import app

    monkeypatch.setattr(routes, "llm_client", lambda: fake_llm)
    monkeypatch.setattr(routes, "storage_client", lambda: fake_storage)
    monkeypatch.setattr(routes.limiter, "enabled", False)

    return TestClient(app)
