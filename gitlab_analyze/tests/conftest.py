"""Shared pytest fixtures: fast pipeline config and a sleep recorder (no real waiting)."""

from __future__ import annotations

import threading
from typing import List

import pytest

from gitlab_analyze.config import PipelineConfig


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []
        self._mu = threading.Lock()

    def __call__(self, seconds: float) -> None:
        with self._mu:
            self.delays.append(seconds)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fast_config() -> PipelineConfig:
    return PipelineConfig(worker_count=4, initial_backoff_s=0.0, max_backoff_s=0.0, page_interval_s=0.0)


@pytest.fixture
def serial_config() -> PipelineConfig:
    """One worker: results reach the reducer in listing order."""
    return PipelineConfig(worker_count=1, initial_backoff_s=0.0, max_backoff_s=0.0, page_interval_s=0.0)
