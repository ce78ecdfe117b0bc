"""Deep population of document reference graphs.

Given root documents and dotted reference paths such as
``comments.user.manager``, fetch every entity named along each path, one
level at a time, and attach it to the documents in place.
"""

from .populate import DeepPopulator, PopulateQuery
from .models import FetchOptions, PopulateOptions, LevelPlan, ResolutionRequest
from .schema import FieldMeta, SchemaGraph, DictSchema, SchemaRegistry, resolve_target_type
from .interfaces import DocumentStore
from .memory_store import Document, InMemoryStore
from .paths import normalize_paths, decompose, apply_whitelist, build_level_plan
from .options import merge_options, apply_rewrite
from .scheduler import LevelScheduler
from .config import ConfigManager, PopulateConfig
from .error_handling import DeepPopulateError, ConfigurationError, FetchError, UsageError

__all__ = [
    # Entry points
    "DeepPopulator",
    "PopulateQuery",

    # Models
    "FetchOptions",
    "PopulateOptions",
    "LevelPlan",
    "ResolutionRequest",

    # Schemas
    "FieldMeta",
    "SchemaGraph",
    "DictSchema",
    "SchemaRegistry",
    "resolve_target_type",

    # Stores
    "DocumentStore",
    "Document",
    "InMemoryStore",

    # Algorithm pieces
    "normalize_paths",
    "decompose",
    "apply_whitelist",
    "build_level_plan",
    "merge_options",
    "apply_rewrite",
    "LevelScheduler",

    # Configuration
    "ConfigManager",
    "PopulateConfig",

    # Errors
    "DeepPopulateError",
    "ConfigurationError",
    "FetchError",
    "UsageError",
]

__version__ = "0.1.0"
