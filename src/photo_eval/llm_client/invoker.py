"""Primary/fallback model invocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, TYPE_CHECKING

from photo_eval.llm_client import prompts, schemas

if TYPE_CHECKING:
    from photo_eval.config import AppConfig
    from photo_eval.io.image_loader import ImagePayload
    from photo_eval.llm_client.responses import RawOutput, VisionClient

logger = logging.getLogger(__name__)


class ModelInvocationError(RuntimeError):
    pass


@dataclass(frozen=True)
class ModelProfile:
    supports_schema: bool = False
    warm_up: bool = False


def profiles_from_config(config: AppConfig) -> dict[str, ModelProfile]:
    names = set(config.schema_models) | set(config.warm_up_models)
    return {
        name: ModelProfile(
            supports_schema=name in config.schema_models,
            warm_up=name in config.warm_up_models,
        )
        for name in names
    }


class ModelInvoker:
    def __init__(
        self,
        client: VisionClient,
        primary_model: str,
        fallback_model: str,
        profiles: Mapping[str, ModelProfile] | None = None,
    ) -> None:
        self._client = client
        self.primary_model = primary_model
        self.fallback_model = fallback_model
        if profiles is None:
            profiles = {primary_model: ModelProfile(supports_schema=True, warm_up=True)}
        self._profiles = dict(profiles)

    def profile(self, model: str) -> ModelProfile:
        return self._profiles.get(model, ModelProfile())

    def _warm_up(self, model: str) -> None:
        try:
            self._client.warm_up(model)
        except Exception as exc:  # noqa: BLE001 - warm-up is best effort
            logger.debug("Warm-up for %s failed: %s", model, exc)

    def invoke(self, model: str, image: ImagePayload, prompt: str) -> RawOutput:
        profile = self.profile(model)
        schema = schemas.evaluation_schema() if profile.supports_schema else None
        try:
            if profile.warm_up:
                self._warm_up(model)
            return self._client.infer(model, prompts.SYSTEM_RULES, prompt, image, schema)
        except Exception as primary_exc:  # noqa: BLE001 - any failure moves to the fallback model
            if model == self.fallback_model:
                raise ModelInvocationError(f"Model {model} failed: {primary_exc}") from primary_exc
            logger.warning(
                "Model %s failed (%s); retrying once with %s", model, primary_exc, self.fallback_model
            )

        try:
            return self._client.infer(self.fallback_model, prompts.SYSTEM_RULES, prompt, image, None)
        except Exception as fallback_exc:  # noqa: BLE001
            raise ModelInvocationError(
                f"Fallback model {self.fallback_model} failed: {fallback_exc}"
            ) from fallback_exc
