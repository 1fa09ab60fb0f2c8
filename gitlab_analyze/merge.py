# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Combine per-project `author -> UserStats` maps into one."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .common_types import StatsByAuthor, UserStats


def merge_project_stats(
    projects_stats: Sequence[StatsByAuthor],
    target_users: Optional[Iterable[str]] = None,
) -> StatsByAuthor:
    """Sum per-project results; if `target_users` is non-empty keep only those authors.

    Inputs are not modified. Output is keyed in author-name order so the result
    does not depend on the order of `projects_stats`.
    """
    allowed = {u for u in (target_users or []) if u}
    merged: StatsByAuthor = {}
    for stats in projects_stats:
        for author, data in stats.items():
            if allowed and author not in allowed:
                continue
            merged.setdefault(author, UserStats()).add(data)

    out: StatsByAuthor = {}
    for author in sorted(merged):
        us = merged[author]
        us.projects = {pid: us.projects[pid] for pid in sorted(us.projects)}
        out[author] = us
    return out
