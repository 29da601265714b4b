"""Unit tests for structured stage logging and pipeline stage telemetry."""

from __future__ import annotations

import io

import pytest

from moravoice import Synthesizer, SynthesizerOptions
from moravoice.errors import StyleNotFoundError
from moravoice.models import AccelerationMode, StyleId, VoiceModel
from moravoice.telemetry.logger import StageLogger, format_stage_line
from moravoice.text import KanaTextAnalyzer


def test_format_stage_line_sorts_and_sanitizes_context() -> None:
    """Context keys should be sorted and values reduced to shell-safe tokens."""

    line = format_stage_line("INFO", "start", "decode", style_id=3, model_id="a b", empty=" ")

    assert line == (
        "[phase] level=INFO stage=decode event=start empty=none model_id=a_b style_id=3"
    )


def test_stage_logger_writes_lines_to_sink() -> None:
    """Stage logger should write one plain line per event to its sink."""

    sink = io.StringIO()
    stage_logger = StageLogger(sink=sink)

    stage_logger.log_stage_start("pitch", style_id=1)
    stage_logger.log_stage_failure("pitch", "StyleNotFoundError")

    assert sink.getvalue().splitlines() == [
        "[phase] level=INFO stage=pitch event=start style_id=1",
        "[phase] level=ERROR stage=pitch event=failure error_type=StyleNotFoundError",
    ]


def test_synthesizer_emits_stage_sequence_and_progress(voice_model_a: VoiceModel) -> None:
    """A text-to-speech request should log and report `analyze -> duration -> pitch -> decode`."""

    sink = io.StringIO()
    progress: list[tuple[str, int, int]] = []
    synthesizer = Synthesizer(
        KanaTextAnalyzer(),
        SynthesizerOptions(acceleration_mode=AccelerationMode.CPU),
        stage_logger=StageLogger(sink=sink),
        stage_progress_callback=lambda stage, index, total: progress.append(
            (stage, index, total)
        ),
    )
    synthesizer.load_voice_model(voice_model_a)

    synthesizer.text_to_speech("ア'メ", StyleId(0))

    assert progress == [("analyze", 1, 4), ("duration", 2, 4), ("pitch", 3, 4), ("decode", 4, 4)]
    lines = sink.getvalue().splitlines()
    assert "[phase] level=INFO stage=registry event=loaded device=cpu model_id=model-a styles=1" in lines
    completed = [line for line in lines if "event=complete" in line]
    assert [line.split()[2] for line in completed] == [
        "stage=analyze",
        "stage=duration",
        "stage=pitch",
        "stage=decode",
    ]


def test_synthesizer_logs_stage_failure_and_propagates(voice_model_a: VoiceModel) -> None:
    """A failing stage should log a failure event and re-raise the original error."""

    sink = io.StringIO()
    synthesizer = Synthesizer(
        KanaTextAnalyzer(),
        SynthesizerOptions(acceleration_mode=AccelerationMode.CPU),
        stage_logger=StageLogger(sink=sink),
    )
    synthesizer.load_voice_model(voice_model_a)

    with pytest.raises(StyleNotFoundError):
        synthesizer.build_query("ア'メ", StyleId(9))

    assert (
        "[phase] level=ERROR stage=duration event=failure error_type=StyleNotFoundError"
        in sink.getvalue().splitlines()
    )
