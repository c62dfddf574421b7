"""Single-photo evaluation pipeline."""

from __future__ import annotations

import logging
from typing import Sequence, TYPE_CHECKING

from photo_eval.knowledge.fetchers import DropboxPathFetcher, UrlFetcher
from photo_eval.knowledge.store import KnowledgeStore
from photo_eval.llm_client.invoker import ModelInvoker, profiles_from_config
from photo_eval.llm_client.prompts import build_prompt
from photo_eval.pipeline.models import EvaluationContext, EvaluationResult
from photo_eval.pipeline.resolver import resolve

if TYPE_CHECKING:
    from photo_eval.config import AppConfig
    from photo_eval.io.image_loader import ImagePayload
    from photo_eval.llm_client.responses import VisionClient

logger = logging.getLogger(__name__)


class PhotoEvaluator:
    def __init__(
        self,
        knowledge: KnowledgeStore,
        invoker: ModelInvoker,
        knowledge_sources: Sequence[str] = (),
        default_model: str | None = None,
    ) -> None:
        self.knowledge = knowledge
        self.invoker = invoker
        self.knowledge_sources = tuple(knowledge_sources)
        self.default_model = default_model or invoker.primary_model

    def evaluate(
        self,
        image: ImagePayload,
        context: EvaluationContext,
        reference_id: str,
        model: str | None = None,
    ) -> EvaluationResult:
        """Run knowledge -> prompt -> model -> resolver for one photo.

        Raises ``ModelInvocationError`` when both the requested and the
        fallback model fail; every other failure degrades instead.
        """
        model = model or self.default_model
        bundle = self.knowledge.load(self.knowledge_sources)
        prompt = build_prompt(context, bundle.text, bundle.sources)

        logger.info("Evaluating %s with model %s (%d knowledge sources)", reference_id, model, len(bundle.sources))
        raw = self.invoker.invoke(model, image, prompt)
        return resolve(raw, fallback_id=reference_id, fallback_area=context.area, model=model)


def build_evaluator(config: AppConfig, client: VisionClient) -> PhotoEvaluator:
    knowledge = KnowledgeStore(
        path_fetcher=DropboxPathFetcher(config.dropbox_token, config.request_timeout_seconds),
        url_fetcher=UrlFetcher(config.request_timeout_seconds),
        max_chars=config.knowledge_max_chars,
    )
    invoker = ModelInvoker(
        client,
        primary_model=config.primary_model,
        fallback_model=config.fallback_model,
        profiles=profiles_from_config(config),
    )
    return PhotoEvaluator(
        knowledge,
        invoker,
        knowledge_sources=config.knowledge_sources,
        default_model=config.default_model,
    )
