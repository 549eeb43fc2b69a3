"""Fan file pairs out over a worker pool and collect a ProjectDiff."""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional

import structlog

from ast_diff.matchers.exceptions import DiffCancelledError
from ast_diff.models import DiffConfig, FailedPair, FileDiff, ProjectDiff
from ast_diff.orchestrator.graph import build_file_graph
from ast_diff.orchestrator.state import TreeInput, file_diff_from_state, make_initial_state

logger = structlog.get_logger()


@dataclass(frozen=True)
class TreePair:
    """Before/after trees of one file.

    Either side may be raw nodes; they are validated inside the worker so a
    malformed tree fails only its own pair.
    """

    file_path: str
    source: TreeInput
    destination: TreeInput


@dataclass
class _PairOutcome:
    file_path: str
    diff: Optional[FileDiff] = None
    failure: Optional[FailedPair] = None
    cancelled: bool = False


class ProjectDiffer:
    """Diff every file pair of one commit in parallel.

    Pairs share no mutable state; each runs its own compiled pipeline. A
    failing pair is reported in ``ProjectDiff.failed`` and never aborts its
    siblings.
    """

    def __init__(self, config: Optional[DiffConfig] = None):
        self.config = config if config is not None else DiffConfig()
        self._cancel_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Request cooperative cancellation of outstanding pairs."""
        logger.info("project_diff_cancel_requested")
        self._cancel_event.set()

    def diff(self, pairs: Iterable[TreePair]) -> ProjectDiff:
        """Diff all pairs and return the aggregated result.

        Args:
            pairs: File pairs; file paths are expected to be unique.

        Returns:
            ProjectDiff with file diffs and failures sorted by file path.
        """
        pairs = list(pairs)
        logger.info("project_diff_started", pairs=len(pairs), workers=self.config.max_workers)

        graph = build_file_graph(self._cancel_event)
        with ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="ast-diff"
        ) as executor:
            futures = [executor.submit(self._run_pair, graph, pair) for pair in pairs]
            try:
                outcomes = [future.result() for future in futures]
            except KeyboardInterrupt:
                # Let running workers stop at their next checkpoint before shutdown joins them
                self.cancel()
                raise

        diffs = sorted((o.diff for o in outcomes if o.diff is not None), key=lambda d: d.file_path)
        failed = sorted(
            (o.failure for o in outcomes if o.failure is not None), key=lambda f: f.file_path
        )
        cancelled = sorted(o.file_path for o in outcomes if o.cancelled)

        logger.info(
            "project_diff_complete",
            diffs=len(diffs),
            failed=len(failed),
            cancelled=len(cancelled),
        )
        return ProjectDiff(file_diffs=diffs, failed=failed, cancelled=cancelled)

    def _run_pair(self, graph, pair: TreePair) -> _PairOutcome:
        if self._cancel_event.is_set():
            return _PairOutcome(pair.file_path, cancelled=True)

        state = make_initial_state(pair.file_path, pair.source, pair.destination, self.config)
        try:
            result = graph.invoke(state)
        except DiffCancelledError:
            logger.info("file_diff_cancelled", file=pair.file_path)
            return _PairOutcome(pair.file_path, cancelled=True)
        except Exception as exc:
            logger.exception("file_diff_crashed", file=pair.file_path)
            return _PairOutcome(
                pair.file_path,
                failure=FailedPair(
                    file_path=pair.file_path,
                    error_type=type(exc).__name__,
                    message=str(exc),
                ),
            )

        if result["failure"] is not None:
            return _PairOutcome(pair.file_path, failure=result["failure"])
        return _PairOutcome(pair.file_path, diff=file_diff_from_state(result))


def diff_trees(
    source: TreeInput,
    destination: TreeInput,
    config: Optional[DiffConfig] = None,
    file_path: str = "",
) -> FileDiff:
    """Diff one pair synchronously, without a worker pool.

    Raises:
        MalformedTreeError: If either side is not a valid tree.
        ConflictError: If matching produced an inconsistent mapping.
        EditScriptError: If the edit script could not be derived.
    """
    graph = build_file_graph()
    result = graph.invoke(make_initial_state(file_path, source, destination, config))
    if result["exception"] is not None:
        raise result["exception"]
    return file_diff_from_state(result)
