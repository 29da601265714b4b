"""Unit tests for model registry load/unload semantics and thread safety."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from moravoice.errors import ModelConflictError, ModelNotFoundError, StyleNotFoundError
from moravoice.models import StyleId, VoiceModel, VoiceModelId
from moravoice.registry import ModelRegistry
from tests.fixture_models import SPEAKER_A_UUID, build_voice_model


def test_registry_load_and_unload_track_models_and_styles(
    voice_model_a: VoiceModel, voice_model_b: VoiceModel
) -> None:
    """Loading two models should expose both styles; unloading one removes only its style."""

    registry = ModelRegistry()
    registry.load(voice_model_a)
    registry.load(voice_model_b)

    assert len(registry) == 2
    assert [style.id for style in registry.style_metas()] == [0, 1]
    assert registry.resolve_style(StyleId(1)).model_id == "model-b"

    registry.unload(voice_model_a.id)

    assert len(registry) == 1
    assert not registry.is_loaded(voice_model_a.id)
    assert registry.is_loaded(voice_model_b.id)
    assert [style.id for style in registry.style_metas()] == [1]
    with pytest.raises(StyleNotFoundError) as exc_info:
        registry.resolve_style(StyleId(0))
    assert exc_info.value.style_id == 0


def test_registry_rejects_duplicate_model_id(voice_model_a: VoiceModel) -> None:
    """Loading the same model id twice should raise without changing state."""

    registry = ModelRegistry()
    registry.load(voice_model_a)

    with pytest.raises(ModelConflictError, match="already loaded"):
        registry.load(voice_model_a)
    assert len(registry) == 1


def test_registry_conflicting_style_leaves_no_trace(voice_model_a: VoiceModel) -> None:
    """A model claiming a loaded style id should be rejected as a whole."""

    registry = ModelRegistry()
    registry.load(voice_model_a)
    conflicting = build_voice_model("model-c", (2, 0), seed=41)

    with pytest.raises(ModelConflictError, match="model-a"):
        registry.load(conflicting)

    assert not registry.is_loaded(conflicting.id)
    assert [style.id for style in registry.style_metas()] == [0]
    with pytest.raises(StyleNotFoundError):
        registry.resolve_style(StyleId(2))


def test_registry_unload_unknown_model_raises() -> None:
    """Unloading an unknown id should raise `ModelNotFoundError`."""

    with pytest.raises(ModelNotFoundError):
        ModelRegistry().unload(VoiceModelId("missing"))


def test_registry_merges_speaker_metas_by_uuid() -> None:
    """Speakers sharing a uuid across models should be listed once with all styles."""

    registry = ModelRegistry()
    registry.load(build_voice_model("model-x", (3,), speaker_uuid=SPEAKER_A_UUID, seed=1))
    registry.load(build_voice_model("model-y", (4,), speaker_uuid=SPEAKER_A_UUID, seed=2))

    (speaker,) = registry.speaker_metas()

    assert [style.id for style in speaker.styles] == [3, 4]


def test_registry_concurrent_conflicting_loads_admit_exactly_one() -> None:
    """Concurrent loads claiming the same style should admit exactly one model."""

    registry = ModelRegistry()
    models = [build_voice_model(f"model-{index}", (7,), seed=index) for index in range(8)]

    def _try_load(model: VoiceModel) -> bool:
        try:
            registry.load(model)
        except ModelConflictError:
            return False
        return True

    with ThreadPoolExecutor(max_workers=8) as executor:
        outcomes = list(executor.map(_try_load, models))

    assert outcomes.count(True) == 1
    assert len(registry) == 1
    assert registry.resolve_style(StyleId(7)).model_id in {model.id for model in models}


def test_registry_resolve_during_load_unload_cycles_sees_consistent_state(
    voice_model_a: VoiceModel, voice_model_b: VoiceModel
) -> None:
    """Lookups racing load/unload cycles should either resolve or raise `StyleNotFoundError`."""

    registry = ModelRegistry()
    registry.load(voice_model_a)

    def _cycle() -> None:
        for _ in range(50):
            registry.load(voice_model_b)
            registry.unload(voice_model_b.id)

    def _lookup() -> int:
        resolved = 0
        for _ in range(200):
            assert registry.resolve_style(StyleId(0)).model_id == "model-a"
            try:
                assert registry.resolve_style(StyleId(1)).model_id == "model-b"
                resolved += 1
            except StyleNotFoundError:
                pass
        return resolved

    with ThreadPoolExecutor(max_workers=2) as executor:
        cycle_future = executor.submit(_cycle)
        lookup_future = executor.submit(_lookup)
        cycle_future.result()
        lookup_future.result()

    assert len(registry) == 1
