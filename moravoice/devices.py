"""Execution device availability probe.

Responsibilities:
- Report which torch devices this process can use for inference.
- Keep device detection independent from synthesizer state.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import json

import torch


@dataclass(frozen=True, slots=True)
class SupportedDevices:
    """Execution devices available to this process.

    Attributes:
        cpu: CPU execution, always available.
        cuda: Whether a CUDA accelerator is usable.
        mps: Whether an Apple Metal accelerator is usable.
    """

    cpu: bool = True
    cuda: bool = False
    mps: bool = False

    @classmethod
    def create(cls) -> SupportedDevices:
        """Probe torch for usable devices."""

        return cls(
            cpu=True,
            cuda=bool(torch.cuda.is_available()),
            mps=bool(torch.backends.mps.is_available()),
        )

    @property
    def has_accelerator(self) -> bool:
        """Whether any non-CPU device is usable."""

        return self.cuda or self.mps

    def to_json(self) -> str:
        """Serialize device flags as deterministic JSON."""

        return json.dumps(asdict(self), sort_keys=True)
