"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
device probes, and speaker/style listings.
"""

from __future__ import annotations

import json
from typing import NoReturn

import typer

from .devices import SupportedDevices
from .errors import MoravoiceError, PipelineStageError
from .models.datatypes import SpeakerMeta


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    elif isinstance(exc, MoravoiceError):
        typer.secho(f"{command_name} failed: {exc.detail}", fg=typer.colors.RED, err=True)
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_supported_devices(devices: SupportedDevices) -> None:
    """Print device availability as deterministic JSON."""

    typer.echo(devices.to_json())


def speaker_metas_payload(speakers: list[SpeakerMeta]) -> list[dict[str, object]]:
    """Serialize speaker metadata for JSON output."""

    return [
        {
            "name": speaker.name,
            "speaker_uuid": speaker.speaker_uuid,
            "version": speaker.version,
            "styles": [
                {"id": int(style.id), "name": style.name, "type": style.type}
                for style in speaker.styles
            ],
        }
        for speaker in speakers
    ]


def echo_speaker_metas(speakers: list[SpeakerMeta]) -> None:
    """Print loaded speakers and styles as indented JSON."""

    typer.echo(json.dumps(speaker_metas_payload(speakers), ensure_ascii=False, indent=2))


def echo_style_rows(speakers: list[SpeakerMeta]) -> None:
    """Print one compact `<style id>. <speaker> (<style>)` row per style."""

    rows = sorted(
        (int(style.id), speaker.name, style.name)
        for speaker in speakers
        for style in speaker.styles
    )
    for style_id, speaker_name, style_name in rows:
        typer.echo(f"{style_id}. {speaker_name} ({style_name})")
