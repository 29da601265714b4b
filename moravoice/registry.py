"""Thread-safe registry of loaded voice models and their styles.

Responsibilities:
- Track loaded voice models and the style ids they claim.
- Reject loads whose model id or style ids collide with loaded models.
- Resolve a style id to device-resident weights for the pipeline stages.

Every public method takes the registry lock, so a lookup observes either the
state before a load/unload or the state after it, never a mix.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Mapping

from .errors import ModelConflictError, ModelNotFoundError, StyleNotFoundError
from .models.datatypes import SpeakerMeta, StyleId, StyleMeta, VoiceModelId
from .models.voice_model import StyleWeights, VoiceModel


@dataclass(frozen=True)
class ResolvedStyle:
    """Result of resolving a style id against the loaded models."""

    model_id: VoiceModelId
    style: StyleMeta
    weights: StyleWeights


@dataclass(frozen=True)
class _LoadedModel:
    """Loaded voice model together with its device-resident weights."""

    model: VoiceModel
    weights: Mapping[StyleId, StyleWeights]


class ModelRegistry:
    """Owned, internally synchronized store of loaded voice models."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._models: dict[VoiceModelId, _LoadedModel] = {}
        self._style_owners: dict[StyleId, tuple[VoiceModelId, StyleMeta]] = {}

    def load(
        self,
        model: VoiceModel,
        placed_weights: Mapping[StyleId, StyleWeights] | None = None,
    ) -> None:
        """Register `model` and all of its styles atomically.

        Args:
            model: Voice model to register.
            placed_weights: Optional weights already moved to the execution
                device; defaults to the model's own weights.

        Raises:
            ModelConflictError: If the model id is already loaded or any of its
                style ids is claimed by another loaded model.
        """

        weights = dict(placed_weights if placed_weights is not None else model.weights)
        styles = model.style_metas
        with self._lock:
            if model.id in self._models:
                raise ModelConflictError(
                    f"Voice model `{model.id}` is already loaded.",
                    hint="Unload the model before loading it again.",
                )
            conflicts = [
                (style.id, self._style_owners[style.id][0])
                for style in styles
                if style.id in self._style_owners
            ]
            if conflicts:
                described = ", ".join(
                    f"`{style_id}` (claimed by `{owner}`)" for style_id, owner in conflicts
                )
                raise ModelConflictError(
                    f"Voice model `{model.id}` declares style id(s) already loaded: {described}.",
                    hint="Unload the conflicting model first.",
                )
            self._models[model.id] = _LoadedModel(model=model, weights=weights)
            for style in styles:
                self._style_owners[style.id] = (model.id, style)

    def unload(self, model_id: VoiceModelId) -> None:
        """Remove a model and all of its style mappings atomically.

        Raises:
            ModelNotFoundError: If `model_id` is not loaded.
        """

        with self._lock:
            loaded = self._models.pop(model_id, None)
            if loaded is None:
                raise ModelNotFoundError(f"Voice model `{model_id}` is not loaded.")
            for style in loaded.model.style_metas:
                del self._style_owners[style.id]

    def is_loaded(self, model_id: VoiceModelId) -> bool:
        with self._lock:
            return model_id in self._models

    def style_metas(self) -> list[StyleMeta]:
        """Return the styles of all loaded models in load order."""

        with self._lock:
            return [
                style
                for loaded in self._models.values()
                for style in loaded.model.style_metas
            ]

    def speaker_metas(self) -> list[SpeakerMeta]:
        """Return loaded speakers, merging styles of speakers sharing a uuid."""

        with self._lock:
            speakers = [
                speaker
                for loaded in self._models.values()
                for speaker in loaded.model.speakers
            ]
        merged: dict[str, SpeakerMeta] = {}
        for speaker in speakers:
            existing = merged.get(speaker.speaker_uuid)
            if existing is None:
                merged[speaker.speaker_uuid] = speaker
                continue
            merged[speaker.speaker_uuid] = SpeakerMeta(
                name=existing.name,
                speaker_uuid=existing.speaker_uuid,
                styles=tuple(
                    sorted(existing.styles + speaker.styles, key=lambda style: style.id)
                ),
                version=existing.version,
            )
        return list(merged.values())

    def resolve_style(self, style_id: StyleId) -> ResolvedStyle:
        """Return the weights bound to `style_id`.

        Raises:
            StyleNotFoundError: If no loaded model claims the style.
        """

        with self._lock:
            owner = self._style_owners.get(style_id)
            if owner is None:
                raise StyleNotFoundError(style_id)
            model_id, style = owner
            weights = self._models[model_id].weights[style.id]
        return ResolvedStyle(model_id=model_id, style=style, weights=weights)

    def __len__(self) -> int:
        with self._lock:
            return len(self._models)
