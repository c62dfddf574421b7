"""Shared fixtures for the photo evaluation tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from photo_eval.config import AppConfig  # noqa: E402
from photo_eval.io.image_loader import ImagePayload  # noqa: E402
from photo_eval.knowledge.store import KnowledgeStore  # noqa: E402
from photo_eval.llm_client.invoker import ModelInvoker  # noqa: E402
from photo_eval.llm_client.responses import TextOutput  # noqa: E402
from photo_eval.pipeline.evaluator import PhotoEvaluator  # noqa: E402

PRIMARY = "@cf/meta/llama-3.2-11b-vision-instruct"
FALLBACK = "@cf/llava-hf/llava-1.5-7b-hf"


class FakeVisionClient:
    """Records every call; replies come from ``outputs`` keyed by model name."""

    def __init__(self, outputs=None, failing=(), warm_up_fails=False) -> None:
        self.outputs = outputs or {}
        self.failing = set(failing)
        self.warm_up_fails = warm_up_fails
        self.calls: list[dict] = []
        self.warm_ups: list[str] = []

    def infer(self, model, system_text, user_text, image, schema=None):
        self.calls.append(
            {"model": model, "system": system_text, "prompt": user_text, "image": image, "schema": schema}
        )
        if model in self.failing:
            raise RuntimeError(f"{model} unavailable")
        return self.outputs.get(model, TextOutput("no json here"))

    def warm_up(self, model):
        self.warm_ups.append(model)
        if self.warm_up_fails:
            raise RuntimeError("warm-up refused")


class FakeFetcher:
    def __init__(self, payloads=None, raises=()) -> None:
        self.payloads = payloads or {}
        self.raises = set(raises)
        self.calls: list[str] = []

    def __call__(self, source):
        self.calls.append(source)
        if source in self.raises:
            raise OSError(f"cannot reach {source}")
        return self.payloads.get(source)


@pytest.fixture
def image() -> ImagePayload:
    return ImagePayload(data=b"\xff\xd8\xff\xe0fake-jpeg", mime_type="image/jpeg", filename="bath.jpg")


@pytest.fixture
def fake_client() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        llm_provider="openai",
        openai_api_key="test-key",
        openai_base_url=None,
        google_api_key=None,
        primary_model=PRIMARY,
        fallback_model=FALLBACK,
        default_model=PRIMARY,
        schema_models=(PRIMARY,),
        warm_up_models=(PRIMARY,),
    )


def make_evaluator(client, fetcher=None, sources=()) -> PhotoEvaluator:
    fetcher = fetcher or FakeFetcher()
    store = KnowledgeStore(path_fetcher=fetcher, url_fetcher=fetcher)
    invoker = ModelInvoker(client, primary_model=PRIMARY, fallback_model=FALLBACK)
    return PhotoEvaluator(store, invoker, knowledge_sources=sources)
