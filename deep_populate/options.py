"""Merging of type defaults with call-site options, and the rewrite pre-pass."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from .models import FetchOptions, PopulateOptions


OptionsInput = Union[PopulateOptions, Mapping[str, Any], None]


@dataclass
class ResolvedOptions:
    """Options after merging and rewriting, ready for decomposition."""

    paths: List[str]
    whitelist: Optional[List[str]] = None
    populate: Dict[str, FetchOptions] = field(default_factory=dict)
    lean: bool = False


def coerce_options(options: OptionsInput) -> PopulateOptions:
    """Accept a PopulateOptions, a plain dict or None."""
    if options is None:
        return PopulateOptions()
    if isinstance(options, PopulateOptions):
        return options
    return PopulateOptions.model_validate(dict(options))


def merge_options(defaults: OptionsInput, overrides: OptionsInput) -> PopulateOptions:
    """Shallow-merge overrides over defaults, key by key.

    Only keys the caller actually set take part; values are replaced, never
    deep-merged.
    """
    merged = coerce_options(defaults).model_dump(exclude_unset=True)
    merged.update(coerce_options(overrides).model_dump(exclude_unset=True))
    return PopulateOptions.model_validate(merged)


def _rewrite(value: str, rewrite: Dict[str, str]) -> str:
    return rewrite.get(value, value)


def apply_rewrite(paths: List[str], options: PopulateOptions) -> ResolvedOptions:
    """Substitute aliases once in paths, whitelist and populate keys.

    A rewritten populate key overwrites an entry already stored under the
    canonical key.
    """
    rewrite = options.rewrite or {}
    populate = dict(options.populate or {})
    whitelist = list(options.whitelist) if options.whitelist is not None else None

    if rewrite:
        paths = [_rewrite(path, rewrite) for path in paths]
        if whitelist is not None:
            whitelist = [_rewrite(entry, rewrite) for entry in whitelist]

        rewritten = {key: value for key, value in populate.items() if key not in rewrite}
        for key, value in populate.items():
            if key in rewrite:
                rewritten[rewrite[key]] = value
        populate = rewritten

    return ResolvedOptions(
        paths=paths,
        whitelist=whitelist,
        populate=populate,
        lean=bool(options.lean),
    )
