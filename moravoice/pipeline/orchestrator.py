"""Pipeline orchestration for text-to-speech requests.

Responsibilities:
- Define the per-request stage order `analyze -> duration -> pitch -> decode`.
- Wrap every stage with structured telemetry.
- Assemble audio queries from analyzed and prosody-predicted accent phrases.

Key types:
- `SynthesisPipeline`: stateless orchestration over a registry and backend.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from ..backend import ExecutionBackend
from ..models.datatypes import AccentPhrase, AudioQuery, StyleId, SynthesisOptions
from ..registry import ModelRegistry
from ..telemetry.logger import StageLogger
from ..text.analyzer import KanaTextAnalyzer, TextAnalyzer
from ..text.kana import create_kana
from .prosody import ProsodyStage
from .telemetry import PipelineTelemetryMixin, StageProgressCallback
from .waveform import WaveformStage


class SynthesisPipeline(PipelineTelemetryMixin):
    """Run analysis, prosody prediction, and decoding for one request at a time.

    The pipeline holds no per-request state, so concurrent requests may share
    one instance. Stage failures propagate unchanged after a failure event.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        backend: ExecutionBackend,
        text_analyzer: TextAnalyzer,
        stage_logger: StageLogger | None = None,
        stage_progress_callback: StageProgressCallback | None = None,
    ) -> None:
        self._text_analyzer = text_analyzer
        self._kana_analyzer = KanaTextAnalyzer()
        self._prosody = ProsodyStage(registry, backend)
        self._waveform = WaveformStage(registry, backend)
        self._stage_logger = stage_logger
        self._stage_progress_callback = stage_progress_callback

    def analyze(self, text: str) -> list[AccentPhrase]:
        """Turn text into a zero-prosody accent phrase skeleton."""

        return self._run_stage("analyze", lambda: self._text_analyzer.analyze(text))

    def analyze_kana(self, kana: str) -> list[AccentPhrase]:
        """Turn kana notation into a zero-prosody accent phrase skeleton."""

        return self._run_stage("analyze", lambda: self._kana_analyzer.analyze(kana))

    def predict_duration(
        self, accent_phrases: Sequence[AccentPhrase], style_id: StyleId
    ) -> list[AccentPhrase]:
        return self._run_stage(
            "duration",
            lambda: self._prosody.predict_duration(accent_phrases, style_id),
            style_id=style_id,
        )

    def predict_pitch(
        self, accent_phrases: Sequence[AccentPhrase], style_id: StyleId
    ) -> list[AccentPhrase]:
        return self._run_stage(
            "pitch",
            lambda: self._prosody.predict_pitch(accent_phrases, style_id),
            style_id=style_id,
        )

    def predict_both(
        self, accent_phrases: Sequence[AccentPhrase], style_id: StyleId
    ) -> list[AccentPhrase]:
        """Predict durations, then pitches conditioned on the new durations."""

        with_lengths = self.predict_duration(accent_phrases, style_id)
        return self.predict_pitch(with_lengths, style_id)

    def create_accent_phrases(self, text: str, style_id: StyleId) -> list[AccentPhrase]:
        """Analyze text and predict prosody for `style_id`."""

        return self.predict_both(self.analyze(text), style_id)

    def create_accent_phrases_from_kana(
        self, kana: str, style_id: StyleId
    ) -> list[AccentPhrase]:
        """Parse kana notation and predict prosody for `style_id`."""

        return self.predict_both(self.analyze_kana(kana), style_id)

    def build_query(self, text: str, style_id: StyleId) -> AudioQuery:
        """Build a default-parameter audio query for text."""

        return self._query_from_phrases(self.create_accent_phrases(text, style_id))

    def build_query_from_kana(self, kana: str, style_id: StyleId) -> AudioQuery:
        """Build a default-parameter audio query for kana notation."""

        return self._query_from_phrases(self.create_accent_phrases_from_kana(kana, style_id))

    def synthesize(
        self,
        query: AudioQuery,
        style_id: StyleId,
        options: SynthesisOptions | None = None,
    ) -> np.ndarray:
        """Decode a query as given; no prosody is re-predicted."""

        return self._run_stage(
            "decode",
            lambda: self._waveform.decode(query, style_id, options),
            style_id=style_id,
        )

    def text_to_speech(
        self,
        text: str,
        style_id: StyleId,
        options: SynthesisOptions | None = None,
    ) -> np.ndarray:
        """Equivalent to `synthesize(build_query(text, style_id), style_id, options)`."""

        return self.synthesize(self.build_query(text, style_id), style_id, options)

    def text_to_speech_from_kana(
        self,
        kana: str,
        style_id: StyleId,
        options: SynthesisOptions | None = None,
    ) -> np.ndarray:
        return self.synthesize(self.build_query_from_kana(kana, style_id), style_id, options)

    @staticmethod
    def _query_from_phrases(accent_phrases: list[AccentPhrase]) -> AudioQuery:
        return AudioQuery(
            accent_phrases=tuple(accent_phrases),
            kana=create_kana(accent_phrases),
        )
