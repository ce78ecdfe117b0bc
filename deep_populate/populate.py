"""Public entry points for deep population."""

from typing import Any, Awaitable, Callable, Optional

from .error_handling import UsageError
from .interfaces import DocumentStore, is_batch, resolve_store
from .logging_config import get_logger, log_context, log_event, log_performance, Timer
from .models import LevelPlan, ResolutionRequest
from .options import OptionsInput, apply_rewrite, coerce_options, merge_options
from .paths import build_level_plan, normalize_paths
from .scheduler import LevelScheduler
from .schema import SchemaRegistry

logger = get_logger(__name__)


class DeepPopulator:
    """Deep population bound to one root entity type.

    Example:
        populator = DeepPopulator("Post", registry, store=store)
        posts = await populator.populate(posts, "comments.user.manager")
    """

    def __init__(
        self,
        root_type: str,
        registry: SchemaRegistry,
        store: Optional[DocumentStore] = None,
        default_options: OptionsInput = None
    ):
        """Initialize a populator.

        Args:
            root_type: Entity type of the documents this populator receives
            registry: Schemas of every type reachable from ``root_type``
            store: Store to fetch through; when omitted it is taken from the
                documents on each call
            default_options: Type-level rewrite/whitelist/populate/lean defaults

        Raises:
            UsageError: If ``root_type`` has no schema in ``registry``
        """
        registry.require(root_type)
        self.root_type = root_type
        self.registry = registry
        self.store = store
        self.default_options = coerce_options(default_options)
        self.scheduler = LevelScheduler(registry)

    def plan(self, paths: Any, options: OptionsInput = None) -> LevelPlan:
        """Levels that a call with these paths and options would run.

        Callers can use it to see which paths a failed call did not reach.
        """
        return self._prepare(paths, options)[0]

    def _prepare(self, paths: Any, options: OptionsInput):
        merged = merge_options(self.default_options, options)
        resolved = apply_rewrite(normalize_paths(paths), merged)
        return build_level_plan(resolved.paths, resolved.whitelist), resolved

    async def populate(self, documents: Any, paths: Any, options: OptionsInput = None) -> Any:
        """Deeply populate a list of documents in place.

        Args:
            documents: Documents of ``root_type``; ``None`` and empty lists
                are returned untouched
            paths: Delimited string or list of dotted paths
            options: Call-site overrides of the type defaults

        Returns:
            The same ``documents`` object

        Raises:
            ConfigurationError: If no store can be resolved
            Exception: The first fetch failure, unchanged
        """
        if documents is None or len(documents) == 0:
            return documents
        return await self._resolve(documents, paths, options)

    async def populate_one(self, document: Any, paths: Any, options: OptionsInput = None) -> Any:
        """Deeply populate a single document in place and return it."""
        if document is None:
            return document
        return await self._resolve(document, paths, options)

    async def _resolve(self, documents: Any, paths: Any, options: OptionsInput) -> Any:
        plan, resolved = self._prepare(paths, options)
        if plan.is_empty:
            return documents

        request = ResolutionRequest(
            documents=documents,
            root_type=self.root_type,
            plan=plan,
            populate=resolved.populate,
            lean=resolved.lean,
            store=resolve_store(self.store, documents),
        )

        with log_context(root_type=self.root_type):
            log_event(
                __name__,
                "populate_started",
                paths=plan.paths,
                max_level=plan.max_level,
                lean=request.lean,
            )
            with Timer() as timer:
                await self.scheduler.run(request)
            log_performance(__name__, "populate", timer.duration_ms, path_count=len(plan.paths))

        return documents


Loader = Callable[[bool], Awaitable[Any]]


class PopulateQuery:
    """A pending load of root documents followed by deep population.

    Example:
        docs = await PopulateQuery(populator, load_posts).deep_populate("user").lean().exec()
    """

    def __init__(self, populator: DeepPopulator, loader: Loader):
        """Initialize a query.

        Args:
            populator: Populator for the loaded documents' type
            loader: Async callable taking the lean flag and returning a list
                of documents, a single document, or nothing
        """
        self.populator = populator
        self.loader = loader
        self._paths: Any = None
        self._options: OptionsInput = None
        self._configured = False
        self._lean = False

    def deep_populate(self, paths: Any, options: OptionsInput = None) -> "PopulateQuery":
        """Set the paths to populate once the documents are loaded.

        Raises:
            UsageError: If called a second time on this query
        """
        if self._configured:
            raise UsageError("deep_populate() can only be called once per query")
        self._configured = True
        self._paths = paths
        self._options = options
        return self

    def lean(self, lean: bool = True) -> "PopulateQuery":
        """Request plain dict results for the root documents and every fetch."""
        self._lean = lean
        return self

    async def exec(self) -> Any:
        """Load the documents and populate them.

        Returns:
            None when nothing was loaded, else the loaded list or document
        """
        result = await self.loader(self._lean)
        if result is None or (is_batch(result) and len(result) == 0):
            return None
        if not self._configured:
            return result

        options = coerce_options(self._options)
        if self._lean:
            options = options.model_copy(update={"lean": True})

        if is_batch(result):
            return await self.populator.populate(result, self._paths, options)
        return await self.populator.populate_one(result, self._paths, options)
