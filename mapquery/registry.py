from __future__ import annotations

import weakref
from typing import Any, Optional, Union

from mapquery.adapters.factory import resolve_backend
from mapquery.config import MapBackend
from mapquery.highlight.engine import EngineHighlight
from mapquery.highlight.highlight_interface import HighlightProvider
from mapquery.highlight.vector_tile import VectorTileHighlight
from mapquery.legend.engine import EngineLegend
from mapquery.legend.legend_interface import LegendProvider
from mapquery.legend.vector_tile import VectorTileLegend

Backend = Optional[Union[MapBackend, str]]


def create_highlight_provider(map_handle: Any, backend: Backend = None) -> HighlightProvider:
    """
    Create a new highlight provider for a map handle.

    Prefer ``ProviderRegistry.highlight_provider``, which reuses providers so
    their title index survives across calls.

    Raises:
        ValueError: If the handle is None or the backend is unknown
    """
    backend = resolve_backend(backend)
    if map_handle is None:
        raise ValueError(f"a map handle is required for the {backend.value} backend")
    if backend == MapBackend.VECTOR_TILE:
        return VectorTileHighlight(map_handle)
    return EngineHighlight(map_handle)


def create_legend_provider(map_handle: Any, backend: Backend = None) -> LegendProvider:
    """
    Create a new legend provider for a map handle.

    Raises:
        ValueError: If the handle is None or the backend is unknown
    """
    backend = resolve_backend(backend)
    if map_handle is None:
        raise ValueError(f"a map handle is required for the {backend.value} backend")
    if backend == MapBackend.VECTOR_TILE:
        return VectorTileLegend(map_handle)
    return EngineLegend(map_handle)


class ProviderRegistry:
    """
    One highlight provider and one legend provider per map handle.

    Providers are held weakly by their map handle and only see the handle through
    a weak proxy: when the host discards a map, its providers are reclaimed with it.

    Examples:
        >>> registry = ProviderRegistry()
        >>> registry.highlight_provider(view, "engine") is registry.highlight_provider(view, "engine")
        True
    """

    def __init__(self):
        self._highlight = weakref.WeakKeyDictionary()
        self._legend = weakref.WeakKeyDictionary()

    @staticmethod
    def _weak_handle(map_handle: Any) -> Any:
        if map_handle is None:
            return None
        return weakref.proxy(map_handle)

    def highlight_provider(self, map_handle: Any, backend: Backend = None) -> HighlightProvider:
        provider = self._highlight.get(map_handle) if map_handle is not None else None
        if provider is None:
            provider = create_highlight_provider(self._weak_handle(map_handle), backend)
            self._highlight[map_handle] = provider
        return provider

    def legend_provider(self, map_handle: Any, backend: Backend = None) -> LegendProvider:
        provider = self._legend.get(map_handle) if map_handle is not None else None
        if provider is None:
            provider = create_legend_provider(self._weak_handle(map_handle), backend)
            self._legend[map_handle] = provider
        return provider

    def __len__(self) -> int:
        return len(self._highlight)
