"""
Recursive secret search.

Walks the secret tree below a base path, matching a case-insensitive
query against entry names and against the JSON-serialized data of leaf
secrets. The walk runs on a fixed-size thread pool: folder scans and
leaf reads are separate tasks, and only the coordinating thread submits
new ones, so the pool size is a hard bound on in-flight requests.
"""

import json
import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Any

from .errors import SecretStoreError, ValidationError
from .models import DirectoryEntry

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 100
DEFAULT_MAX_DEPTH = 10
DEFAULT_MAX_WORKERS = 8


class CancellationToken:
    """
    Cooperative cancellation signal for one search.

    Thread-safe; cancel() may be called from any thread. Requests already
    in flight finish, but nothing new is started and their results are
    dropped.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class _SearchState:
    """Visited set and results shared by all tasks of one search."""

    def __init__(self, query: str, token: CancellationToken, max_results: int, max_depth: int):
        self.query = query.lower()
        self.token = token
        self.max_results = max_results
        self.max_depth = max_depth
        self._lock = threading.Lock()
        self._visited: set[str] = set()
        self._results: list[DirectoryEntry] = []
        self._result_paths: set[str] = set()

    def should_stop(self) -> bool:
        if self.token.cancelled:
            return True
        with self._lock:
            return len(self._results) >= self.max_results

    def visit(self, path: str) -> bool:
        """Mark a path visited; False if it already was."""
        with self._lock:
            if path in self._visited:
                return False
            self._visited.add(path)
            return True

    def is_recorded(self, path: str) -> bool:
        with self._lock:
            return path in self._result_paths

    def record(self, entry: DirectoryEntry) -> bool:
        with self._lock:
            if self.token.cancelled or len(self._results) >= self.max_results:
                return False
            if entry.path in self._result_paths:
                return False
            self._results.append(entry)
            self._result_paths.add(entry.path)
            return True

    def results(self) -> list[DirectoryEntry]:
        with self._lock:
            return self._results[: self.max_results]


class SearchEngine:
    """
    Finds secrets whose name or content contains a query.

    Args:
        client: Object providing list_secrets(path) and read_secret(path),
            normally a SecretStoreClient. Its caches make repeated
            searches cheap.
        max_workers: Maximum number of concurrent requests per search.
    """

    def __init__(self, client: Any, max_workers: int = DEFAULT_MAX_WORKERS):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.client = client
        self.max_workers = max_workers

    def search(
        self,
        query: str,
        base_path: str = "",
        cancel_token: CancellationToken | None = None,
        max_results: int = DEFAULT_MAX_RESULTS,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> list[DirectoryEntry]:
        """
        Search the tree below base_path.

        base_path is listed at depth 0 and a folder d levels below it only
        when d <= max_depth, so max_depth=0 searches the direct children of
        base_path and nothing deeper. Errors listing or reading any single
        path are logged and skipped. Result order follows completion
        order, not path order.

        Args:
            query: Case-insensitive substring to look for.
            base_path: Folder to start from (mount root by default).
            cancel_token: Stops the search when cancelled. A token that is
                already cancelled returns [] without any request.
            max_results: Hard cap on returned entries.
            max_depth: Deepest folder level that is listed.

        Returns:
            Matching DirectoryEntry objects (results found before a
            cancellation are kept).

        Raises:
            ValidationError: If query is empty.
        """
        if not query:
            raise ValidationError("Search query must not be empty")

        token = cancel_token or CancellationToken()
        if token.cancelled or max_results <= 0:
            return []

        state = _SearchState(query, token, max_results, max_depth)

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="vault-search"
        ) as executor:
            pending = {executor.submit(self._scan_folder, state, base_path, 0)}
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    if future.cancelled():
                        continue
                    for task, *args in future.result():
                        if state.should_stop():
                            break
                        pending.add(executor.submit(task, state, *args))

                if token.cancelled:
                    for future in pending:
                        future.cancel()

        results = state.results()
        logger.debug(
            "Search for %r under %r found %d results%s",
            query,
            base_path,
            len(results),
            " (cancelled)" if token.cancelled else "",
        )
        return results

    def _scan_folder(self, state: _SearchState, path: str, depth: int) -> list[tuple]:
        """List one folder, record name matches and return follow-up tasks."""
        if state.should_stop() or depth > state.max_depth:
            return []

        try:
            entries = self.client.list_secrets(path)
        except SecretStoreError as e:
            logger.warning("Search: listing %r failed: %s", path, e)
            return []
        except Exception:
            logger.warning("Search: unexpected error listing %r", path, exc_info=True)
            return []

        follow_ups = []
        for entry in entries:
            if state.should_stop():
                break
            if not state.visit(entry.path):
                continue

            if state.query in entry.name.lower():
                state.record(entry)

            if entry.is_folder:
                if depth + 1 <= state.max_depth:
                    follow_ups.append((self._scan_folder, entry.path, depth + 1))
            elif not state.is_recorded(entry.path):
                follow_ups.append((self._match_content, entry))

        return follow_ups

    def _match_content(self, state: _SearchState, entry: DirectoryEntry) -> list[tuple]:
        """Read a leaf secret and record it if its data contains the query."""
        if state.should_stop():
            return []

        try:
            secret = self.client.read_secret(entry.path)
        except SecretStoreError as e:
            logger.warning("Search: reading %r failed: %s", entry.path, e)
            return []
        except Exception:
            logger.warning("Search: unexpected error reading %r", entry.path, exc_info=True)
            return []

        serialized = json.dumps(dict(secret.data), ensure_ascii=False, default=str)
        if state.query in serialized.lower():
            state.record(entry)
        return []
