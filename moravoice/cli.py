"""Command-line interface for moravoice.

Responsibilities:
- Expose user-facing commands for device probing, model listing, and synthesis.
- Convert CLI arguments into `MoravoiceConfig` and a ready `Synthesizer`.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from dataclasses import replace
import json
import os
from pathlib import Path
from typing import Annotated

import typer

from .audio.wav import write_wav
from .cli_rendering import (
    echo_speaker_metas,
    echo_style_rows,
    echo_supported_devices,
    exit_with_command_error,
)
from .config import ConfigLoader, MoravoiceConfig, RuntimeConfigSources, SynthesisRuntimeConfig
from .devices import SupportedDevices
from .errors import MoravoiceError, PipelineStageError
from .models.datatypes import AudioQuery, StyleId
from .models.serialization import audio_query_from_payload, audio_query_payload
from .models.voice_model import VoiceModel
from .synthesizer import Synthesizer
from .telemetry.logger import StageLogger
from .text.analyzer import DictionaryTextAnalyzer
from .text.user_dict import UserDict

app = typer.Typer(
    name="moravoice",
    no_args_is_help=True,
    help="moravoice text-to-speech CLI.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with command defaults."),
]
ModelOption = Annotated[
    list[Path] | None,
    typer.Option(
        "--model",
        help="Voice model bundle to load; repeatable (overrides config `model_paths`).",
    ),
]
AccelerationOption = Annotated[
    str | None,
    typer.Option("--acceleration-mode", help="Execution device policy: AUTO, CPU, or GPU."),
]
UserDictOption = Annotated[
    Path | None,
    typer.Option("--user-dict", help="User dictionary JSON file used by text analysis."),
]
StyleIdOption = Annotated[int, typer.Option("--style-id", help="Style id to synthesize with.")]
KanaOption = Annotated[
    bool,
    typer.Option("--kana", help="Treat input text as AquesTalk-like kana notation."),
]


class StageProgressIndicator:
    """Render deterministic per-stage progress lines on stderr."""

    def __init__(self, command_name: str) -> None:
        self._command_name = command_name

    def on_stage_start(self, stage_name: str, stage_index: int, stage_total: int) -> None:
        """Print one progress line for a stage start transition."""

        typer.echo(
            f"[progress] command={self._command_name} "
            f"{stage_index}/{stage_total} stage={stage_name}",
            err=True,
        )


def _load_yaml_config(config_path: Path) -> MoravoiceConfig:
    """Load a YAML config file and map failures to stage errors."""

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _resolve_command_config(
    config_file: Path | None,
    models: list[Path] | None,
    acceleration_mode: str | None,
    user_dict: Path | None,
    output_sampling_rate: int | None = None,
    output_stereo: bool | None = None,
    interrogative_upspeak: bool | None = None,
) -> tuple[MoravoiceConfig, SynthesisRuntimeConfig]:
    """Resolve effective config from YAML or environment plus explicit CLI overrides."""

    if config_file is not None:
        base_config = _load_yaml_config(config_file)
    else:
        try:
            base_config = ConfigLoader.from_env()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=f"Invalid `MORAVOICE_*` environment: {exc}",
                hint="Fix or unset the offending environment variable.",
            ) from exc

    runtime_cli_values: dict[str, str] = {}
    if acceleration_mode is not None:
        runtime_cli_values["acceleration_mode"] = acceleration_mode
    if output_sampling_rate is not None:
        runtime_cli_values["output_sampling_rate"] = str(output_sampling_rate)
    if output_stereo is not None:
        runtime_cli_values["output_stereo"] = "true" if output_stereo else "false"
    if interrogative_upspeak is not None:
        runtime_cli_values["enable_interrogative_upspeak"] = (
            "true" if interrogative_upspeak else "false"
        )

    config = MoravoiceConfig(
        acceleration_mode=base_config.acceleration_mode,
        model_paths=list(models) if models else list(base_config.model_paths),
        user_dict_path=user_dict if user_dict is not None else base_config.user_dict_path,
        output_sampling_rate=base_config.output_sampling_rate,
        output_stereo=base_config.output_stereo,
        enable_interrogative_upspeak=base_config.enable_interrogative_upspeak,
        runtime_sources=RuntimeConfigSources(cli=runtime_cli_values, env=os.environ),
    )
    try:
        runtime = config.resolved_runtime()
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=str(exc),
            hint="Check CLI options and `MORAVOICE_*` environment values.",
        ) from exc
    return config, runtime


def _build_synthesizer(
    config: MoravoiceConfig,
    runtime: SynthesisRuntimeConfig,
    command_name: str,
) -> Synthesizer:
    """Create a synthesizer, load the user dictionary and every configured model."""

    user_dict = UserDict()
    if config.user_dict_path is not None:
        try:
            user_dict.load(config.user_dict_path)
        except MoravoiceError as exc:
            raise PipelineStageError(
                stage="user_dict", detail=exc.detail, hint=exc.hint
            ) from exc

    try:
        synthesizer = Synthesizer(
            DictionaryTextAnalyzer(user_dict),
            runtime.synthesizer_options(),
            stage_logger=StageLogger(),
            stage_progress_callback=StageProgressIndicator(command_name).on_stage_start,
        )
    except MoravoiceError as exc:
        raise PipelineStageError(stage="backend", detail=exc.detail, hint=exc.hint) from exc

    if not config.model_paths:
        raise PipelineStageError(
            stage="model",
            detail="No voice model bundles were provided.",
            hint="Pass `--model <bundle.vvm>` or set `model_paths` in the config file.",
        )
    for model_path in config.model_paths:
        try:
            synthesizer.load_voice_model(VoiceModel.from_path(model_path))
        except MoravoiceError as exc:
            raise PipelineStageError(stage="model", detail=exc.detail, hint=exc.hint) from exc
    return synthesizer


def _apply_output_settings(query: AudioQuery, runtime: SynthesisRuntimeConfig) -> AudioQuery:
    """Apply configured output sampling rate and channel layout to a built query."""

    return replace(
        query,
        output_sampling_rate=runtime.output_sampling_rate,
        output_stereo=runtime.output_stereo,
    )


def _build_command_query(
    synthesizer: Synthesizer,
    runtime: SynthesisRuntimeConfig,
    text: str,
    style_id: int,
    kana: bool,
) -> AudioQuery:
    """Build an audio query from plain text or kana notation."""

    try:
        if kana:
            query = synthesizer.build_query_from_kana(text, StyleId(style_id))
        else:
            query = synthesizer.build_query(text, StyleId(style_id))
    except MoravoiceError as exc:
        raise PipelineStageError(stage="audio_query", detail=exc.detail, hint=exc.hint) from exc
    return _apply_output_settings(query, runtime)


def _synthesize_to_wav(
    synthesizer: Synthesizer,
    runtime: SynthesisRuntimeConfig,
    query: AudioQuery,
    style_id: int,
    out: Path,
) -> Path:
    """Decode a query and write the samples as WAV."""

    try:
        samples = synthesizer.synthesize(
            query, StyleId(style_id), runtime.synthesis_options()
        )
    except MoravoiceError as exc:
        raise PipelineStageError(stage="synthesis", detail=exc.detail, hint=exc.hint) from exc
    return write_wav(samples, query.output_sampling_rate, out)


def _read_query_file(query_path: Path) -> AudioQuery:
    """Read an audio query JSON file and map failures to stage errors."""

    try:
        payload = json.loads(query_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="audio_query",
            detail=f"Audio query file not found: `{query_path}`.",
            hint="Create one with `moravoice audio-query --out <path.json>`.",
        ) from exc
    except json.JSONDecodeError as exc:
        raise PipelineStageError(
            stage="audio_query",
            detail=f"Audio query file `{query_path}` is not valid JSON: {exc}",
        ) from exc
    try:
        return audio_query_from_payload(payload)
    except MoravoiceError as exc:
        raise PipelineStageError(stage="audio_query", detail=exc.detail, hint=exc.hint) from exc


@app.command("devices")
def devices_command() -> None:
    """Print which execution devices this host supports."""

    try:
        devices = SupportedDevices.create()
    except Exception as exc:
        exit_with_command_error("devices", exc)
    echo_supported_devices(devices)


@app.command("metas")
def metas_command(
    config_file: ConfigOption = None,
    models: ModelOption = None,
    rows: Annotated[
        bool, typer.Option("--rows", help="Print one compact line per style instead of JSON.")
    ] = False,
) -> None:
    """List speakers and styles of the given voice models."""

    try:
        config, runtime = _resolve_command_config(
            config_file, models, acceleration_mode="CPU", user_dict=None
        )
        synthesizer = _build_synthesizer(config, runtime, "metas")
        speakers = synthesizer.metas()
    except Exception as exc:
        exit_with_command_error("metas", exc)

    if rows:
        echo_style_rows(speakers)
    else:
        echo_speaker_metas(speakers)


@app.command("audio-query")
def audio_query_command(
    text: Annotated[str, typer.Argument(help="Text (or kana notation with `--kana`).")],
    style_id: StyleIdOption,
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Write query JSON here instead of stdout."),
    ] = None,
    kana: KanaOption = False,
    config_file: ConfigOption = None,
    models: ModelOption = None,
    acceleration_mode: AccelerationOption = None,
    user_dict: UserDictOption = None,
    output_sampling_rate: Annotated[
        int | None, typer.Option("--sampling-rate", help="Output sampling rate in Hz.")
    ] = None,
    output_stereo: Annotated[
        bool | None, typer.Option("--stereo/--mono", help="Output channel layout.")
    ] = None,
) -> None:
    """Analyze text and predict prosody into an editable audio query."""

    try:
        config, runtime = _resolve_command_config(
            config_file,
            models,
            acceleration_mode,
            user_dict,
            output_sampling_rate=output_sampling_rate,
            output_stereo=output_stereo,
        )
        synthesizer = _build_synthesizer(config, runtime, "audio-query")
        query = _build_command_query(synthesizer, runtime, text, style_id, kana)
        rendered = json.dumps(audio_query_payload(query), ensure_ascii=False, indent=2)
        if out is not None:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(rendered + "\n", encoding="utf-8")
    except Exception as exc:
        exit_with_command_error("audio-query", exc)

    if out is None:
        typer.echo(rendered)
    else:
        typer.echo(f"Audio query: {out}")


@app.command("synthesize")
def synthesize_command(
    query_path: Annotated[Path, typer.Argument(help="Audio query JSON file.")],
    style_id: StyleIdOption,
    out: Annotated[Path, typer.Option("--out", help="Output WAV path.")] = Path("out.wav"),
    config_file: ConfigOption = None,
    models: ModelOption = None,
    acceleration_mode: AccelerationOption = None,
    interrogative_upspeak: Annotated[
        bool | None,
        typer.Option(
            "--interrogative-upspeak/--no-interrogative-upspeak",
            help="Raise the final mora of interrogative phrases.",
        ),
    ] = None,
) -> None:
    """Decode an audio query JSON file into a WAV file without re-predicting prosody."""

    try:
        config, runtime = _resolve_command_config(
            config_file,
            models,
            acceleration_mode,
            user_dict=None,
            interrogative_upspeak=interrogative_upspeak,
        )
        query = _read_query_file(query_path)
        synthesizer = _build_synthesizer(config, runtime, "synthesize")
        output_path = _synthesize_to_wav(synthesizer, runtime, query, style_id, out)
    except Exception as exc:
        exit_with_command_error("synthesize", exc)

    typer.echo(f"Audio: {output_path}")


@app.command("tts")
def tts_command(
    text: Annotated[str, typer.Argument(help="Text (or kana notation with `--kana`).")],
    style_id: StyleIdOption,
    out: Annotated[Path, typer.Option("--out", help="Output WAV path.")] = Path("out.wav"),
    kana: KanaOption = False,
    config_file: ConfigOption = None,
    models: ModelOption = None,
    acceleration_mode: AccelerationOption = None,
    user_dict: UserDictOption = None,
    output_sampling_rate: Annotated[
        int | None, typer.Option("--sampling-rate", help="Output sampling rate in Hz.")
    ] = None,
    output_stereo: Annotated[
        bool | None, typer.Option("--stereo/--mono", help="Output channel layout.")
    ] = None,
    interrogative_upspeak: Annotated[
        bool | None,
        typer.Option(
            "--interrogative-upspeak/--no-interrogative-upspeak",
            help="Raise the final mora of interrogative phrases.",
        ),
    ] = None,
) -> None:
    """Run analysis, prosody prediction, and decoding into a WAV file."""

    try:
        config, runtime = _resolve_command_config(
            config_file,
            models,
            acceleration_mode,
            user_dict,
            output_sampling_rate=output_sampling_rate,
            output_stereo=output_stereo,
            interrogative_upspeak=interrogative_upspeak,
        )
        synthesizer = _build_synthesizer(config, runtime, "tts")
        query = _build_command_query(synthesizer, runtime, text, style_id, kana)
        output_path = _synthesize_to_wav(synthesizer, runtime, query, style_id, out)
    except Exception as exc:
        exit_with_command_error("tts", exc)

    typer.echo(f"Audio: {output_path}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
