"""Telemetry and observability helpers.

This package emits deterministic stage events for synthesis requests and
registry changes.
"""

from .logger import StageLogger

__all__ = ["StageLogger"]
