"""Data models for deep population requests."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FetchOptions(BaseModel):
    """Options for a single fetch-and-attach call.

    Unknown keys are kept so store-specific modifiers pass straight through.
    """

    model_config = ConfigDict(extra="allow", protected_namespaces=())

    path: Optional[str] = None
    select: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)
    match: Optional[Dict[str, Any]] = None
    lean: bool = False
    model: Optional[str] = None

    @field_validator("select", mode="before")
    @classmethod
    def join_select(cls, v):
        """Accept a list of field names as well as a space-separated string."""
        if isinstance(v, (list, tuple)):
            return " ".join(str(name) for name in v)
        return v


class PopulateOptions(BaseModel):
    """Type-level defaults or call-site overrides.

    ``None`` means "not set". An empty whitelist is set and allows nothing.
    """

    rewrite: Optional[Dict[str, str]] = None
    whitelist: Optional[List[str]] = None
    populate: Optional[Dict[str, FetchOptions]] = None
    lean: Optional[bool] = None


@dataclass
class LevelPlan:
    """Decomposed, filtered paths grouped by level."""

    paths: List[str] = field(default_factory=list)
    max_level: int = -1
    levels: Dict[int, List[str]] = field(default_factory=dict)

    def paths_at(self, level: int) -> List[str]:
        """Paths scheduled at ``level``."""
        return self.levels.get(level, [])

    @property
    def is_empty(self) -> bool:
        return self.max_level < 0


@dataclass
class ResolutionRequest:
    """Everything one resolution call needs; discarded when it finishes."""

    documents: Any
    root_type: str
    plan: LevelPlan
    populate: Dict[str, FetchOptions] = field(default_factory=dict)
    lean: bool = False
    store: Any = None
