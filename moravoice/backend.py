"""Execution backend selection for one synthesizer instance.

Responsibilities:
- Resolve a requested acceleration mode into a concrete torch device.
- Place style weights and request tensors on the bound device.

The backend is frozen once resolved; model loads and synthesis calls only
read it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import torch

from .devices import SupportedDevices
from .errors import GpuSupportError
from .models.datatypes import AccelerationMode
from .models.voice_model import StyleWeights
from .telemetry.logger import StageLogger


@dataclass(frozen=True)
class ExecutionBackend:
    """Torch device bound to a synthesizer for its whole lifetime."""

    device: torch.device
    requested_mode: AccelerationMode = AccelerationMode.AUTO

    @classmethod
    def resolve(
        cls,
        mode: AccelerationMode,
        probe: Callable[[], SupportedDevices] = SupportedDevices.create,
        stage_logger: StageLogger | None = None,
    ) -> ExecutionBackend:
        """Select the device for `mode`.

        `CPU` never probes. `AUTO` uses an accelerator when one exists and
        otherwise falls back to CPU. `GPU` raises `GpuSupportError` when no
        accelerator exists.
        """

        if mode is AccelerationMode.CPU:
            backend = cls(device=torch.device("cpu"), requested_mode=mode)
            if stage_logger is not None:
                stage_logger.log_event("backend", "resolved", device="cpu", mode=mode.value)
            return backend

        devices = probe()
        if devices.cuda:
            device = torch.device("cuda")
        elif devices.mps:
            device = torch.device("mps")
        elif mode is AccelerationMode.GPU:
            raise GpuSupportError(
                "GPU acceleration was requested but no accelerator is available.",
                hint="Use acceleration mode `AUTO` or `CPU` on this host.",
            )
        else:
            device = torch.device("cpu")
            if stage_logger is not None:
                stage_logger.log_event("backend", "accelerator_fallback", device="cpu")

        if stage_logger is not None:
            stage_logger.log_event(
                "backend", "resolved", device=device.type, mode=mode.value
            )
        return cls(device=device, requested_mode=mode)

    @property
    def is_accelerator_active(self) -> bool:
        """Whether the bound device is not the CPU."""

        return self.device.type != "cpu"

    def place(self, weights: StyleWeights) -> StyleWeights:
        """Return `weights` copied onto the bound device."""

        return weights.to(self.device)

    def tensor(self, values: object, dtype: torch.dtype = torch.float32) -> torch.Tensor:
        """Build a tensor on the bound device."""

        return torch.as_tensor(values, dtype=dtype, device=self.device)
