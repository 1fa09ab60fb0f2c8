#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared value types for the commit-statistics pipeline.

Used by:
- `api/commits.py` (parsing GitLab listing/detail payloads)
- `pipeline.py` (worker results + reducer state)
- `merge.py` / `export.py` (per-author totals)

This module MUST NOT import the client or the pipeline to avoid cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple, Union


def _non_negative_int(raw: Dict[str, Any], key: str) -> int:
    v = raw.get(key, 0)
    if v is None:
        return 0
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"stats.{key} must be an integer, got {v!r}")
    if v < 0:
        raise ValueError(f"stats.{key} must be non-negative, got {v}")
    return v


@dataclass(frozen=True)
class CommitRef:
    """One entry of `GET /projects/:id/repository/commits`."""

    id: str
    author_name: str
    message: str
    parent_ids: Tuple[str, ...] = ()

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def is_merge(self) -> bool:
        return len(self.parent_ids) > 1

    @classmethod
    def from_api(cls, raw: Any) -> "CommitRef":
        if not isinstance(raw, dict):
            raise ValueError(f"commit entry must be an object, got {type(raw).__name__}")
        commit_id = str(raw.get("id") or "")
        if not commit_id:
            raise ValueError("commit entry has no id")
        parents = raw.get("parent_ids") or []
        if not isinstance(parents, list):
            raise ValueError(f"parent_ids must be a list for commit {commit_id[:8]}")
        return cls(
            id=commit_id,
            author_name=str(raw.get("author_name") or ""),
            message=str(raw.get("message") or ""),
            parent_ids=tuple(str(p) for p in parents),
        )


@dataclass(frozen=True)
class CommitDiffStats:
    """`stats` block of a single commit.

    `total` is reported by GitLab independently of additions/deletions and is
    propagated as-is, never recomputed.
    """

    additions: int = 0
    deletions: int = 0
    total: int = 0

    @classmethod
    def from_api(cls, raw: Any) -> "CommitDiffStats":
        if not isinstance(raw, dict):
            raise ValueError(f"commit detail must be an object, got {type(raw).__name__}")
        stats = raw.get("stats")
        if stats is None:
            return cls()
        if not isinstance(stats, dict):
            raise ValueError(f"stats must be an object, got {type(stats).__name__}")
        return cls(
            additions=_non_negative_int(stats, "additions"),
            deletions=_non_negative_int(stats, "deletions"),
            total=_non_negative_int(stats, "total"),
        )


@dataclass(frozen=True)
class CommitSignature:
    """Dedup key: same message + author + diff stats == same logical change (cherry-pick, rebase)."""

    message: str
    author_name: str
    diff: CommitDiffStats

    @classmethod
    def of(cls, ref: CommitRef, diff: CommitDiffStats) -> "CommitSignature":
        return cls(message=ref.message, author_name=ref.author_name, diff=diff)


@dataclass(frozen=True)
class EnrichedCommit:
    ref: CommitRef
    diff: CommitDiffStats
    ok = True


@dataclass(frozen=True, eq=False)
class FailedCommit:
    ref: CommitRef
    error: BaseException
    ok = False


# Worker output: exactly one of the two shapes.
CommitResult = Union[EnrichedCommit, FailedCommit]


@dataclass
class ProjectStats:
    """Running totals for one author within one project."""

    additions: int = 0
    deletions: int = 0
    changes: int = 0

    def add(self, other: "ProjectStats") -> None:
        self.additions += other.additions
        self.deletions += other.deletions
        self.changes += other.changes

    def to_dict(self) -> Dict[str, int]:
        return {"additions": self.additions, "deletions": self.deletions, "changes": self.changes}


@dataclass
class UserStats:
    """Per-author totals.

    `changes` sums the upstream `stats.total`; `total` sums additions + deletions.
    The two are kept separate on purpose since GitLab may report them differently.
    """

    additions: int = 0
    deletions: int = 0
    changes: int = 0
    total: int = 0
    projects: Dict[str, ProjectStats] = field(default_factory=dict)

    def add_commit(self, project_id: str, diff: CommitDiffStats) -> None:
        self.additions += diff.additions
        self.deletions += diff.deletions
        self.changes += diff.total
        self.total += diff.additions + diff.deletions
        ps = self.projects.setdefault(str(project_id), ProjectStats())
        ps.add(ProjectStats(additions=diff.additions, deletions=diff.deletions, changes=diff.total))

    def add(self, other: "UserStats") -> None:
        self.additions += other.additions
        self.deletions += other.deletions
        self.changes += other.changes
        self.total += other.total
        for project_id, ps in other.projects.items():
            self.projects.setdefault(project_id, ProjectStats()).add(ps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "additions": self.additions,
            "deletions": self.deletions,
            "changes": self.changes,
            "total": self.total,
            "projects": {pid: self.projects[pid].to_dict() for pid in sorted(self.projects)},
        }


# author_name -> UserStats (output of one project run, and of the merge)
StatsByAuthor = Dict[str, UserStats]
