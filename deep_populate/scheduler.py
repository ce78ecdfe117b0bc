"""Level-by-level scheduling of fetch-and-attach calls.

Level L + 1 reads entities attached during level L, so levels run strictly
in order. Paths within a level never depend on each other and are fetched
concurrently; the level is joined before the next one starts.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from .logging_config import get_logger, log_event, log_error, log_performance, Timer
from .models import FetchOptions, ResolutionRequest
from .schema import SchemaRegistry, resolve_target_type

logger = get_logger(__name__)


class LevelScheduler:
    """Runs the fetches of a ResolutionRequest one level at a time."""

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry

    def fetchable_paths(self, request: ResolutionRequest, level: int) -> List[Tuple[str, str]]:
        """(path, target type) pairs at ``level`` that need a fetch.

        Structural paths resolve to no type and are skipped.
        """
        fetchable = []
        for path in request.plan.paths_at(level):
            target = resolve_target_type(self.registry, request.root_type, path)
            if target is None:
                logger.debug("Skipping structural path %s", path)
                continue
            fetchable.append((path, target))
        return fetchable

    def build_fetch_options(self, request: ResolutionRequest, path: str, target_type: str) -> FetchOptions:
        """Copy of the per-path options with path, target type and lean applied.

        A ``model`` set by the caller is kept as an explicit override.
        """
        base = request.populate.get(path)
        options = base.model_copy(deep=True) if base is not None else FetchOptions()
        options.path = path
        if options.model is None:
            options.model = target_type
        if request.lean:
            options.lean = True
        return options

    async def run(self, request: ResolutionRequest) -> None:
        """Execute every level of the request.

        Raises:
            Exception: The first failure of the first failing level, unchanged
        """
        for level in range(request.plan.max_level + 1):
            await self.run_level(request, level)

    async def run_level(self, request: ResolutionRequest, level: int) -> None:
        """Fan out all fetches at ``level`` and wait for every one to settle."""
        fetchable = self.fetchable_paths(request, level)

        log_event(
            __name__,
            "level_started",
            level=logging.DEBUG,
            populate_level=level,
            path_count=len(request.plan.paths_at(level)),
            fetch_count=len(fetchable),
        )

        if not fetchable:
            return

        calls = [(path, self.build_fetch_options(request, path, target)) for path, target in fetchable]

        with Timer() as timer:
            tasks = await self._start(request, calls, level)
            first_error = await self._join(tasks, fetchable, level)

        log_performance(
            __name__,
            "level",
            timer.duration_ms,
            populate_level=level,
            failed=first_error is not None,
        )

        if first_error is not None:
            raise first_error

    async def _start(self, request: ResolutionRequest, calls, level: int) -> List[asyncio.Future]:
        """Start one task per call.

        If a store call raises before handing back an awaitable, the tasks
        already started are cancelled and awaited before the error propagates.
        """
        tasks = []
        try:
            for path, options in calls:
                tasks.append(asyncio.ensure_future(
                    request.store.fetch_and_attach(request.documents, path, options)
                ))
        except Exception as e:
            log_error(__name__, "fetch_failed", e, populate_level=level, path=path)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return tasks

    async def _join(self, tasks, fetchable, level: int) -> Optional[BaseException]:
        """Wait for all tasks; return the first error in completion order."""
        paths = {task: path for task, (path, _) in zip(tasks, fetchable)}
        first_error = None
        pending = set(tasks)

        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    error = asyncio.CancelledError() if task.cancelled() else task.exception()
                    if error is None:
                        continue
                    log_error(__name__, "fetch_failed", error, populate_level=level, path=paths[task])
                    if first_error is None:
                        first_error = error
        except asyncio.CancelledError:
            for task in pending:
                task.cancel()
            raise

        return first_error
