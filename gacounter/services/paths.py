"""
Path equivalence — which raw GA page paths count as the same resource.

GA reports whatever path the visitor requested, so one node shows up as
``/node/42``, its alias ``/about-us``, language-prefixed forms such as
``/de/node/42`` and ``/de/ueber-uns``, and all of those again with a
trailing slash. ``path_variants`` expands a canonical path into that set;
``path_key`` turns each variant into the fixed-width storage key.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Mapping, Protocol


class AliasResolver(Protocol):
    """Host routing layer: the public alias of a path in one language."""

    def alias_for(self, path: str, langcode: str) -> str:
        """Return the alias, or ``path`` unchanged when none is registered."""
        ...


class StaticAliasResolver:
    """Alias lookup over a fixed ``{langcode: {path: alias}}`` table."""

    def __init__(self, aliases: Mapping[str, Mapping[str, str]] | None = None):
        self._aliases = {lang: dict(table) for lang, table in (aliases or {}).items()}

    def alias_for(self, path: str, langcode: str) -> str:
        return self._aliases.get(langcode, {}).get(path, path)


def path_key(path: str) -> str:
    """md5 hex digest of the UTF-8 bytes of *path*."""
    return hashlib.md5(path.encode("utf-8")).hexdigest()


def canonical_path(resource_type: str, resource_id: int) -> str:
    return f"/{resource_type}/{resource_id}"


def normalize_path(path: str) -> str:
    """Force a single leading slash and drop surrounding spaces/slashes."""
    return "/" + path.strip(" /")


def path_variants(
    path: str,
    languages: Iterable[str],
    resolver: AliasResolver,
    prefixes: Mapping[str, str] | None = None,
) -> list[str]:
    """
    Every string path GA may have recorded for the resource at *path*.

    For each language the alias is added, plus ``/{prefix}{path}`` and
    ``/{prefix}{alias}`` when the language has a non-empty URL prefix.
    Each of those is then repeated with ``/`` appended. Duplicates are
    dropped, first occurrence wins, so the result is stable for a given
    configuration.
    """
    prefixes = prefixes or {}

    variants = [path]
    for langcode in languages:
        alias = resolver.alias_for(path, langcode)
        variants.append(alias)
        prefix = prefixes.get(langcode)
        if prefix:
            variants.append(f"/{prefix}{path}")
            variants.append(f"/{prefix}{alias}")

    variants += [v + "/" for v in variants]

    return list(dict.fromkeys(variants))
