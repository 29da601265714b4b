"""Configuration model and loaders for moravoice.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Provide deterministic precedence resolution for runtime synthesis settings.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `MoravoiceConfig`: normalized settings for a synthesizer and its requests.
- `SynthesisRuntimeConfig`: resolved runtime values after precedence.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `MoravoiceConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models.datatypes import DEFAULT_SAMPLING_RATE, AccelerationMode, SynthesisOptions
from .parsing import (
    normalize_optional_string,
    parse_acceleration_mode,
    parse_permissive_boolean,
    parse_positive_int,
    parse_required_boolean,
)
from .synthesizer import SynthesizerOptions


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SynthesisRuntimeConfig:
    """Resolved runtime values for one synthesizer invocation."""

    acceleration_mode: AccelerationMode
    output_sampling_rate: int
    output_stereo: bool
    enable_interrogative_upspeak: bool

    def synthesizer_options(self) -> SynthesizerOptions:
        return SynthesizerOptions(acceleration_mode=self.acceleration_mode)

    def synthesis_options(self) -> SynthesisOptions:
        return SynthesisOptions(
            enable_interrogative_upspeak=self.enable_interrogative_upspeak
        )


@dataclass(slots=True)
class MoravoiceConfig:
    """Runtime configuration for a synthesizer and its requests.

    Attributes:
        acceleration_mode: Requested execution device policy.
        model_paths: Voice model bundles to load at startup.
        user_dict_path: Optional user dictionary JSON file.
        output_sampling_rate: Sample rate applied to built audio queries.
        output_stereo: Whether built audio queries request stereo output.
        enable_interrogative_upspeak: Whether questions end on a rising mora.
        runtime_sources: Optional runtime source overrides injected by CLI.
    """

    acceleration_mode: AccelerationMode = AccelerationMode.AUTO
    model_paths: list[Path] = field(default_factory=list)
    user_dict_path: Path | None = None
    output_sampling_rate: int = DEFAULT_SAMPLING_RATE
    output_stereo: bool = False
    enable_interrogative_upspeak: bool = True
    runtime_sources: RuntimeConfigSources = field(default_factory=RuntimeConfigSources)

    def validate(self) -> None:
        """Validate configuration values before a synthesizer is built."""

        if not isinstance(self.acceleration_mode, AccelerationMode):
            raise ValueError("`acceleration_mode` must be an `AccelerationMode`.")
        if isinstance(self.output_sampling_rate, bool) or self.output_sampling_rate <= 0:
            raise ValueError("`output_sampling_rate` must be a positive integer.")

    def resolved_runtime(
        self, sources: RuntimeConfigSources | None = None
    ) -> SynthesisRuntimeConfig:
        """Resolve runtime settings with deterministic source precedence.

        Precedence for each key is:
        `cli` > `env` > config field default.
        """

        resolved_sources = sources if sources is not None else self.runtime_sources

        mode_value = self._resolve_runtime_value(
            key="acceleration_mode",
            env_key="MORAVOICE_ACCELERATION_MODE",
            sources=resolved_sources,
        )
        rate_value = self._resolve_runtime_value(
            key="output_sampling_rate",
            env_key="MORAVOICE_OUTPUT_SAMPLING_RATE",
            sources=resolved_sources,
        )
        stereo_value = self._resolve_runtime_value(
            key="output_stereo",
            env_key="MORAVOICE_OUTPUT_STEREO",
            sources=resolved_sources,
        )
        upspeak_value = self._resolve_runtime_value(
            key="enable_interrogative_upspeak",
            env_key="MORAVOICE_ENABLE_INTERROGATIVE_UPSPEAK",
            sources=resolved_sources,
        )

        return SynthesisRuntimeConfig(
            acceleration_mode=(
                parse_acceleration_mode(mode_value)
                if mode_value is not None
                else self.acceleration_mode
            ),
            output_sampling_rate=(
                parse_positive_int(rate_value, "output_sampling_rate")
                if rate_value is not None
                else self.output_sampling_rate
            ),
            output_stereo=(
                parse_required_boolean(stereo_value, "output_stereo")
                if stereo_value is not None
                else self.output_stereo
            ),
            enable_interrogative_upspeak=(
                parse_required_boolean(upspeak_value, "enable_interrogative_upspeak")
                if upspeak_value is not None
                else self.enable_interrogative_upspeak
            ),
        )

    @staticmethod
    def _resolve_runtime_value(
        key: str, env_key: str, sources: RuntimeConfigSources
    ) -> str | None:
        """Return the highest-precedence non-blank source value, if any."""

        cli_value = MoravoiceConfig._normalized_lookup(sources.cli, key)
        if cli_value is not None:
            return cli_value
        return MoravoiceConfig._normalized_lookup(sources.env, env_key)

    @staticmethod
    def _normalized_lookup(mapping: Mapping[str, str], key: str) -> str | None:
        """Return a stripped mapping value for a key or `None` when missing/blank."""

        if key not in mapping:
            return None
        return normalize_optional_string(mapping.get(key))


class ConfigLoader:
    """Factory methods for creating `MoravoiceConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "acceleration_mode",
            "model_paths",
            "user_dict_path",
            "output_sampling_rate",
            "output_stereo",
            "enable_interrogative_upspeak",
        }
    )
    _RUNTIME_ENV_KEYS = frozenset(
        {
            "MORAVOICE_ACCELERATION_MODE",
            "MORAVOICE_OUTPUT_SAMPLING_RATE",
            "MORAVOICE_OUTPUT_STEREO",
            "MORAVOICE_ENABLE_INTERROGATIVE_UPSPEAK",
        }
    )

    @staticmethod
    def from_yaml(path: Path) -> MoravoiceConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        return ConfigLoader._build_config_from_mapping(
            payload, source_label=f"YAML `{path}`", base_dir=path.parent
        )

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> MoravoiceConfig:
        """Create a validated config from `MORAVOICE_*` environment variables.

        `MORAVOICE_MODEL_PATHS` lists bundle paths separated by `os.pathsep`.
        """

        env_map: Mapping[str, str] = os.environ if env is None else env

        mode_value = ConfigLoader._optional_env_string(env_map, "MORAVOICE_ACCELERATION_MODE")
        acceleration_mode = (
            parse_acceleration_mode(mode_value, "MORAVOICE_ACCELERATION_MODE")
            if mode_value is not None
            else AccelerationMode.AUTO
        )
        raw_model_paths = ConfigLoader._optional_env_string(env_map, "MORAVOICE_MODEL_PATHS")
        model_paths = (
            [Path(item) for item in raw_model_paths.split(os.pathsep) if item.strip()]
            if raw_model_paths is not None
            else []
        )
        user_dict_value = ConfigLoader._optional_env_string(env_map, "MORAVOICE_USER_DICT_PATH")
        rate_value = ConfigLoader._optional_env_string(env_map, "MORAVOICE_OUTPUT_SAMPLING_RATE")
        output_sampling_rate = (
            parse_positive_int(rate_value, "MORAVOICE_OUTPUT_SAMPLING_RATE")
            if rate_value is not None
            else DEFAULT_SAMPLING_RATE
        )
        output_stereo = ConfigLoader._optional_env_boolean(env_map, "MORAVOICE_OUTPUT_STEREO")
        upspeak = ConfigLoader._optional_env_boolean(
            env_map, "MORAVOICE_ENABLE_INTERROGATIVE_UPSPEAK"
        )

        runtime_env = {
            key: value
            for key, value in env_map.items()
            if key in ConfigLoader._RUNTIME_ENV_KEYS
            and normalize_optional_string(value) is not None
        }

        config = MoravoiceConfig(
            acceleration_mode=acceleration_mode,
            model_paths=model_paths,
            user_dict_path=Path(user_dict_value) if user_dict_value is not None else None,
            output_sampling_rate=output_sampling_rate,
            output_stereo=bool(output_stereo),
            enable_interrogative_upspeak=True if upspeak is None else upspeak,
            runtime_sources=RuntimeConfigSources(env=runtime_env),
        )
        config.validate()
        return config

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` could not be parsed: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any], source_label: str, base_dir: Path
    ) -> MoravoiceConfig:
        """Build a validated config from a normalized mapping payload.

        Relative paths are resolved against `base_dir`.
        """

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

        mode_value = normalize_optional_string(payload.get("acceleration_mode"))
        acceleration_mode = (
            parse_acceleration_mode(mode_value)
            if mode_value is not None
            else AccelerationMode.AUTO
        )
        model_paths = [
            ConfigLoader._anchored_path(item, base_dir)
            for item in ConfigLoader._optional_string_list(payload, "model_paths", source_label)
        ]
        user_dict_value = normalize_optional_string(payload.get("user_dict_path"))
        output_sampling_rate = (
            parse_positive_int(payload["output_sampling_rate"], "output_sampling_rate")
            if "output_sampling_rate" in payload
            else DEFAULT_SAMPLING_RATE
        )
        output_stereo = ConfigLoader._optional_boolean(
            payload, "output_stereo", source_label, default=False
        )
        upspeak = ConfigLoader._optional_boolean(
            payload, "enable_interrogative_upspeak", source_label, default=True
        )

        config = MoravoiceConfig(
            acceleration_mode=acceleration_mode,
            model_paths=model_paths,
            user_dict_path=(
                ConfigLoader._anchored_path(user_dict_value, base_dir)
                if user_dict_value is not None
                else None
            ),
            output_sampling_rate=output_sampling_rate,
            output_stereo=output_stereo,
            enable_interrogative_upspeak=upspeak,
        )
        config.validate()
        return config

    @staticmethod
    def _anchored_path(value: str, base_dir: Path) -> Path:
        path = Path(value)
        return path if path.is_absolute() else base_dir / path

    @staticmethod
    def _optional_string_list(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> list[str]:
        """Read an optional list of non-empty strings."""

        raw = payload.get(key)
        if raw is None:
            return []
        if isinstance(raw, str) or not isinstance(raw, list):
            raise ValueError(f"{source_label} field `{key}` must be a list of strings.")
        values: list[str] = []
        for item in raw:
            normalized = normalize_optional_string(item)
            if normalized is None:
                raise ValueError(f"{source_label} field `{key}` contains a blank entry.")
            values.append(normalized)
        return values

    @staticmethod
    def _optional_boolean(
        payload: Mapping[str, Any], key: str, source_label: str, default: bool
    ) -> bool:
        if key not in payload:
            return default
        return ConfigLoader._require_boolean(payload[key], f"{source_label} field `{key}`")

    @staticmethod
    def _require_boolean(value: object, label: str) -> bool:
        """Parse a permissive boolean or raise `ValueError` naming `label`."""

        parsed = parse_permissive_boolean(value)
        if parsed is None:
            raise ValueError(f"{label} must be one of true/false, 1/0, yes/no, on/off.")
        return parsed

    @staticmethod
    def _optional_env_string(env: Mapping[str, str], key: str) -> str | None:
        return normalize_optional_string(env.get(key))

    @staticmethod
    def _optional_env_boolean(env: Mapping[str, str], key: str) -> bool | None:
        raw = ConfigLoader._optional_env_string(env, key)
        if raw is None:
            return None
        return ConfigLoader._require_boolean(raw, f"Environment variable `{key}`")
