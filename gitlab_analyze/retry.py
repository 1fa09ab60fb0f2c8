# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Bounded exponential-backoff retry around a single GitLab REST call.

Shared by the commit lister (one call per page), the stats workers (one call per
commit) and the project listing.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, Tuple, Type, TypeVar

from .config import PipelineConfig
from .exceptions import RETRYABLE_ERRORS

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delays(config: PipelineConfig) -> Iterator[float]:
    """Sleep before each retry: initial, 2x, 4x, ... capped at `max_backoff_s` (no jitter)."""
    delay = float(config.initial_backoff_s)
    for _ in range(max(0, config.max_attempts - 1)):
        yield min(delay, float(config.max_backoff_s))
        delay *= 2


def call_with_retries(
    fn: Callable[[], T],
    *,
    config: PipelineConfig,
    describe: str,
    sleep: Callable[[float], None] = time.sleep,
    retry_on: Tuple[Type[BaseException], ...] = RETRYABLE_ERRORS,
) -> T:
    """Run `fn` up to `config.max_attempts` times; return its first result or raise the last error.

    Only `retry_on` exceptions trigger another attempt; anything else propagates immediately.
    """
    delays = backoff_delays(config)
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except retry_on as e:
            delay = next(delays, None)
            if delay is None:
                _logger.warning(f"⚠️  {describe}: giving up after {attempt} attempt(s): {e}")
                raise
            _logger.info(f"{describe}: attempt {attempt} failed ({e}); retrying in {delay:g}s")
            sleep(delay)
