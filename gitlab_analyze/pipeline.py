# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Per-project commit statistics pipeline.

    lister thread --(CommitRef queue, bounded)--> N stats workers --(result queue)--> reducer

- The lister paginates the commit listing and feeds CommitRefs as pages arrive.
- Each worker fetches one commit's diff stats (with retries) and emits an
  EnrichedCommit or a FailedCommit. Output order is arbitrary.
- The reducer runs in the calling thread and exclusively owns the dedup sets and
  the author map, so none of that state needs a lock.

A listing failure aborts the whole project run (partial totals are discarded);
a single commit failure only drops that commit.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Callable, Dict, List, Optional, Set, Union, TYPE_CHECKING

from .api.commits import fetch_commit_diff, iter_commit_pages
from .common_types import (
    CommitRef,
    CommitResult,
    CommitSignature,
    EnrichedCommit,
    FailedCommit,
    StatsByAuthor,
    UserStats,
)
from .config import PipelineConfig, parse_date
from .exceptions import FatalListingError, GitLabAPIError, PerCommitFetchError

if TYPE_CHECKING:  # pragma: no cover
    from . import GitLabAPIClient

_logger = logging.getLogger(__name__)

# Queue sentinels.
_NO_MORE_COMMITS = object()
_WORKER_DONE = object()

DROP_FAILED = "failed"
DROP_DUPLICATE_SIGNATURE = "duplicate_signature"
DROP_MERGE_PARENT_PROCESSED = "merge_parent_processed"
DROP_DUPLICATE_ID = "duplicate_id"


class _AtomicCounter:
    def __init__(self) -> None:
        self._mu = threading.Lock()
        self._value = 0

    def add(self, n: int = 1) -> int:
        with self._mu:
            self._value += n
            return self._value

    @property
    def value(self) -> int:
        with self._mu:
            return self._value


class CommitReducer:
    """Dedup + attribution of enriched commits for one project run.

    Rules, applied in order to each result:
      1. failed fetch -> drop
      2. signature (message, author, diff) already counted -> drop
      3. merge commit with any parent already processed -> drop
      4. commit id already processed -> drop
      5. otherwise count it for the author (top level + this project)

    Rule 3 depends on arrival order: whether the parent was reduced before the
    merge commit is decided by worker scheduling. It is a best-effort heuristic,
    not a guarantee; every other rule is order-insensitive.
    """

    def __init__(self, project_id: str):
        self.project_id = str(project_id)
        self.processed_ids: Set[str] = set()
        self.seen_signatures: Set[CommitSignature] = set()
        self.stats: StatsByAuthor = {}
        self.counted = 0
        self.dropped: Dict[str, int] = {}

    def _drop(self, reason: str, ref: CommitRef) -> bool:
        self.dropped[reason] = self.dropped.get(reason, 0) + 1
        _logger.debug(f"Project {self.project_id}: skip commit {ref.short_id} ({reason})")
        return False

    def consume(self, result: CommitResult) -> bool:
        """Apply one worker result; return True if it was counted."""
        if isinstance(result, FailedCommit):
            return self._drop(DROP_FAILED, result.ref)

        ref, diff = result.ref, result.diff
        signature = CommitSignature.of(ref, diff)
        if signature in self.seen_signatures:
            return self._drop(DROP_DUPLICATE_SIGNATURE, ref)
        if ref.is_merge and any(pid in self.processed_ids for pid in ref.parent_ids):
            return self._drop(DROP_MERGE_PARENT_PROCESSED, ref)
        if ref.id in self.processed_ids:
            return self._drop(DROP_DUPLICATE_ID, ref)

        self.processed_ids.add(ref.id)
        self.seen_signatures.add(signature)
        self.stats.setdefault(ref.author_name, UserStats()).add_commit(self.project_id, diff)
        self.counted += 1
        return True

    def result(self) -> StatsByAuthor:
        return {author: self.stats[author] for author in sorted(self.stats)}


def _as_date(value: Union[date, str]) -> date:
    return value if isinstance(value, date) else parse_date(value)


class ProjectStatsPipeline:
    """Runs lister -> stats workers -> reducer for one project at a time."""

    def __init__(
        self,
        api: "GitLabAPIClient",
        config: Optional[PipelineConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api = api
        self.config = config or PipelineConfig()
        self.sleep = sleep

    def _enrich(self, worker_id: int, project_id: str, ref: CommitRef) -> CommitResult:
        try:
            diff = fetch_commit_diff(self.api, project_id, ref, config=self.config, sleep=self.sleep)
        except GitLabAPIError as e:
            _logger.warning(f"Worker {worker_id}: failed to fetch commit {ref.short_id}: {e}")
            return FailedCommit(ref=ref, error=PerCommitFetchError(commit_id=ref.id, cause=e))
        except Exception as e:
            # Keep the worker alive so the lister never blocks on a full queue.
            _logger.exception(f"Worker {worker_id}: unexpected error on commit {ref.short_id}")
            return FailedCommit(ref=ref, error=PerCommitFetchError(commit_id=ref.id, cause=e))
        return EnrichedCommit(ref=ref, diff=diff)

    def run(self, project_id: str, start_date: Union[date, str], end_date: Union[date, str]) -> StatsByAuthor:
        """Return `author -> UserStats` for one project over [start_date, end_date].

        Raises:
            FatalListingError: the commit listing failed; no partial result is returned.
        """
        project_id = str(project_id).strip()
        since, until = _as_date(start_date), _as_date(end_date)
        cfg = self.config
        n_workers = cfg.worker_count

        commit_q: "queue.Queue[object]" = queue.Queue(maxsize=cfg.queue_size)
        result_q: "queue.Queue[object]" = queue.Queue()
        listed = _AtomicCounter()
        enriched = _AtomicCounter()
        listing_errors: List[FatalListingError] = []

        def produce() -> None:
            try:
                for page in iter_commit_pages(self.api, project_id, since, until, config=cfg, sleep=self.sleep):
                    listed.add(len(page))
                    for ref in page:
                        commit_q.put(ref)
            except FatalListingError as e:
                _logger.error(f"❌ {e}")
                listing_errors.append(e)
            finally:
                for _ in range(n_workers):
                    commit_q.put(_NO_MORE_COMMITS)

        def work(worker_id: int) -> None:
            try:
                while True:
                    item = commit_q.get()
                    if item is _NO_MORE_COMMITS:
                        return
                    result = self._enrich(worker_id, project_id, item)  # type: ignore[arg-type]
                    result_q.put(result)
                    if result.ok:
                        n = enriched.add()
                        if n % cfg.progress_every == 0:
                            total = max(listed.value, n)
                            _logger.info(f"Progress: {n / total * 100:.2f}% ({n}/{total})")
            finally:
                result_q.put(_WORKER_DONE)

        reducer = CommitReducer(project_id)
        with ThreadPoolExecutor(max_workers=n_workers + 1, thread_name_prefix=f"commits-{project_id}") as ex:
            producer = ex.submit(produce)
            workers = [ex.submit(work, i) for i in range(n_workers)]
            done = 0
            while done < n_workers:
                item = result_q.get()
                if item is _WORKER_DONE:
                    done += 1
                    continue
                reducer.consume(item)  # type: ignore[arg-type]
            producer.result()
            for fut in workers:
                fut.result()

        if listing_errors:
            raise listing_errors[0]

        _logger.info(
            f"Project {project_id}: listed {listed.value} commits, counted {reducer.counted}, "
            f"authors {len(reducer.stats)}"
        )
        if reducer.dropped:
            _logger.debug(f"Project {project_id}: dropped {dict(sorted(reducer.dropped.items()))}")
        return reducer.result()


def get_project_commit_stats(
    api: "GitLabAPIClient",
    project_id: str,
    start_date: Union[date, str],
    end_date: Union[date, str],
    *,
    config: Optional[PipelineConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> StatsByAuthor:
    return ProjectStatsPipeline(api, config, sleep=sleep).run(project_id, start_date, end_date)
