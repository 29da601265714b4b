"""Synthesizer facade owning one execution backend and one model registry.

Responsibilities:
- Resolve the execution backend once, at construction.
- Load and unload voice models, placing their weights on the bound device.
- Expose every pipeline stage, each independently invocable.

Key types:
- `SynthesizerOptions`: construction options.
- `Synthesizer`: public library entry point.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np

from .backend import ExecutionBackend
from .devices import SupportedDevices
from .models.datatypes import (
    AccelerationMode,
    AccentPhrase,
    AudioQuery,
    SpeakerMeta,
    StyleId,
    StyleMeta,
    SynthesisOptions,
    VoiceModelId,
)
from .models.voice_model import VoiceModel
from .pipeline.orchestrator import SynthesisPipeline
from .pipeline.telemetry import StageProgressCallback
from .registry import ModelRegistry
from .telemetry.logger import StageLogger
from .text.analyzer import DictionaryTextAnalyzer, TextAnalyzer


@dataclass(frozen=True, slots=True)
class SynthesizerOptions:
    """Construction options for `Synthesizer`.

    Attributes:
        acceleration_mode: Requested execution device policy.
    """

    acceleration_mode: AccelerationMode = AccelerationMode.AUTO


class Synthesizer:
    """Text-to-speech facade bound to one device for its whole lifetime.

    Model loading is serialized by the registry; synthesis calls may run
    concurrently from several threads.
    """

    def __init__(
        self,
        text_analyzer: TextAnalyzer | None = None,
        options: SynthesizerOptions | None = None,
        *,
        stage_logger: StageLogger | None = None,
        stage_progress_callback: StageProgressCallback | None = None,
        device_probe: Callable[[], SupportedDevices] = SupportedDevices.create,
    ) -> None:
        """Resolve the backend and build an empty registry.

        Raises:
            GpuSupportError: If `GPU` mode is requested without an accelerator.
        """

        resolved_options = options if options is not None else SynthesizerOptions()
        self._stage_logger = stage_logger
        self._backend = ExecutionBackend.resolve(
            resolved_options.acceleration_mode,
            probe=device_probe,
            stage_logger=stage_logger,
        )
        self._registry = ModelRegistry()
        self._pipeline = SynthesisPipeline(
            self._registry,
            self._backend,
            text_analyzer if text_analyzer is not None else DictionaryTextAnalyzer(),
            stage_logger=stage_logger,
            stage_progress_callback=stage_progress_callback,
        )

    @property
    def backend(self) -> ExecutionBackend:
        return self._backend

    @property
    def is_accelerator_active(self) -> bool:
        """Whether inference runs on a non-CPU device."""

        return self._backend.is_accelerator_active

    @property
    def is_gpu_mode(self) -> bool:
        return self.is_accelerator_active

    def load_voice_model(self, model: VoiceModel) -> None:
        """Place `model` weights on the bound device and register its styles.

        Raises:
            ModelConflictError: If the model id or any style id is already loaded.
        """

        placed = {
            style_id: self._backend.place(weights)
            for style_id, weights in model.weights.items()
        }
        self._registry.load(model, placed)
        if self._stage_logger is not None:
            self._stage_logger.log_event(
                "registry",
                "loaded",
                model_id=model.id,
                styles=len(model.style_metas),
                device=self._backend.device.type,
            )

    def unload_voice_model(self, model_id: VoiceModelId) -> None:
        """Remove a loaded model and its styles.

        Raises:
            ModelNotFoundError: If `model_id` is not loaded.
        """

        self._registry.unload(model_id)
        if self._stage_logger is not None:
            self._stage_logger.log_event("registry", "unloaded", model_id=model_id)

    def is_loaded_voice_model(self, model_id: VoiceModelId) -> bool:
        return self._registry.is_loaded(model_id)

    def list_style_metas(self) -> list[StyleMeta]:
        """Return the styles of every loaded model in load order."""

        return self._registry.style_metas()

    def metas(self) -> list[SpeakerMeta]:
        """Return loaded speakers with styles merged by speaker uuid."""

        return self._registry.speaker_metas()

    def create_accent_phrases(self, text: str, style_id: StyleId) -> list[AccentPhrase]:
        return self._pipeline.create_accent_phrases(text, style_id)

    def create_accent_phrases_from_kana(
        self, kana: str, style_id: StyleId
    ) -> list[AccentPhrase]:
        return self._pipeline.create_accent_phrases_from_kana(kana, style_id)

    def build_query(self, text: str, style_id: StyleId) -> AudioQuery:
        """Analyze text and predict prosody into a default-parameter query."""

        return self._pipeline.build_query(text, style_id)

    def build_query_from_kana(self, kana: str, style_id: StyleId) -> AudioQuery:
        return self._pipeline.build_query_from_kana(kana, style_id)

    def predict_duration(
        self, accent_phrases: Sequence[AccentPhrase], style_id: StyleId
    ) -> list[AccentPhrase]:
        return self._pipeline.predict_duration(accent_phrases, style_id)

    def predict_pitch(
        self, accent_phrases: Sequence[AccentPhrase], style_id: StyleId
    ) -> list[AccentPhrase]:
        return self._pipeline.predict_pitch(accent_phrases, style_id)

    def predict_both(
        self, accent_phrases: Sequence[AccentPhrase], style_id: StyleId
    ) -> list[AccentPhrase]:
        return self._pipeline.predict_both(accent_phrases, style_id)

    def synthesize(
        self,
        query: AudioQuery,
        style_id: StyleId,
        options: SynthesisOptions | None = None,
    ) -> np.ndarray:
        """Decode a query into `float32` samples without re-predicting prosody."""

        return self._pipeline.synthesize(query, style_id, options)

    def text_to_speech(
        self,
        text: str,
        style_id: StyleId,
        options: SynthesisOptions | None = None,
    ) -> np.ndarray:
        """Run `build_query` then `synthesize` in one call."""

        return self._pipeline.text_to_speech(text, style_id, options)

    def text_to_speech_from_kana(
        self,
        kana: str,
        style_id: StyleId,
        options: SynthesisOptions | None = None,
    ) -> np.ndarray:
        return self._pipeline.text_to_speech_from_kana(kana, style_id, options)
