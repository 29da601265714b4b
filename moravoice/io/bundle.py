"""Voice model bundle reader and writer.

Responsibilities:
- Read zip bundles (`manifest.json` + `weights.npz`) into `VoiceModel` objects.
- Write `VoiceModel` objects back into the same deterministic layout.

Bundle layout:
- `manifest.json`: `{"id": str, "speakers": [{"name", "speaker_uuid", "version",
  "styles": [{"id", "name", "type"}]}]}`
- `weights.npz`: float32 arrays keyed `<style_id>/<weight_name>`.
"""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any, Mapping
import zipfile

import numpy as np
import torch

from ..errors import InvalidModelError
from ..models.datatypes import SpeakerMeta, StyleId, StyleMeta, VoiceModelId
from ..models.voice_model import StyleWeights, VoiceModel

MANIFEST_NAME = "manifest.json"
WEIGHTS_NAME = "weights.npz"


def read_voice_model(path: Path) -> VoiceModel:
    """Read and validate a voice model bundle from `path`."""

    try:
        with zipfile.ZipFile(path) as archive:
            manifest_bytes = archive.read(MANIFEST_NAME)
            weights_bytes = archive.read(WEIGHTS_NAME)
    except FileNotFoundError as exc:
        raise InvalidModelError(
            f"Voice model bundle not found: `{path}`.",
            hint="Pass an existing bundle path via `--model`.",
        ) from exc
    except KeyError as exc:
        raise InvalidModelError(f"Voice model bundle `{path}` is incomplete: {exc}") from exc
    except (OSError, zipfile.BadZipFile) as exc:
        raise InvalidModelError(f"Voice model bundle `{path}` is unreadable: {exc}") from exc

    try:
        manifest = json.loads(manifest_bytes.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidModelError(f"Bundle `{path}` has an invalid manifest: {exc}") from exc
    if not isinstance(manifest, Mapping):
        raise InvalidModelError(f"Bundle `{path}` manifest must be a mapping/object.")

    speakers = _parse_speakers(manifest.get("speakers"), path)
    with np.load(io.BytesIO(weights_bytes), allow_pickle=False) as archive_arrays:
        arrays = {name: archive_arrays[name] for name in archive_arrays.files}

    weights: dict[StyleId, StyleWeights] = {}
    for speaker in speakers:
        for style in speaker.styles:
            prefix = f"{style.id}/"
            tensors = {
                name[len(prefix):]: torch.from_numpy(np.asarray(array, dtype=np.float32))
                for name, array in arrays.items()
                if name.startswith(prefix)
            }
            weights[style.id] = StyleWeights.from_tensors(tensors)

    model_id = manifest.get("id")
    if not isinstance(model_id, str):
        raise InvalidModelError(f"Bundle `{path}` manifest requires a string `id`.")
    return VoiceModel(id=VoiceModelId(model_id), speakers=speakers, weights=weights)


def write_voice_model(model: VoiceModel, path: Path) -> Path:
    """Write `model` as a bundle at `path` and return the written path."""

    manifest = {
        "id": str(model.id),
        "speakers": [
            {
                "name": speaker.name,
                "speaker_uuid": speaker.speaker_uuid,
                "version": speaker.version,
                "styles": [
                    {"id": int(style.id), "name": style.name, "type": style.type}
                    for style in speaker.styles
                ],
            }
            for speaker in model.speakers
        ],
    }
    arrays = {
        f"{style_id}/{name}": tensor.detach().cpu().numpy().astype(np.float32)
        for style_id, weights in model.weights.items()
        for name, tensor in weights.tensors().items()
    }
    weights_buffer = io.BytesIO()
    np.savez(weights_buffer, **arrays)

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(
            MANIFEST_NAME,
            json.dumps(manifest, ensure_ascii=False, indent=2, sort_keys=True),
        )
        archive.writestr(WEIGHTS_NAME, weights_buffer.getvalue())
    return path


def _parse_speakers(raw: Any, path: Path) -> tuple[SpeakerMeta, ...]:
    """Parse the manifest `speakers` list into speaker metadata."""

    if not isinstance(raw, list) or not raw:
        raise InvalidModelError(f"Bundle `{path}` manifest requires a non-empty `speakers` list.")
    speakers: list[SpeakerMeta] = []
    for raw_speaker in raw:
        try:
            styles = tuple(
                StyleMeta(
                    id=StyleId(int(raw_style["id"])),
                    name=str(raw_style["name"]),
                    type=str(raw_style.get("type", "talk")),
                )
                for raw_style in raw_speaker["styles"]
            )
            speakers.append(
                SpeakerMeta(
                    name=str(raw_speaker["name"]),
                    speaker_uuid=str(raw_speaker["speaker_uuid"]),
                    styles=styles,
                    version=str(raw_speaker.get("version", "0.0.0")),
                )
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise InvalidModelError(
                f"Bundle `{path}` has an invalid speaker entry: {exc}"
            ) from exc
    return tuple(speakers)
