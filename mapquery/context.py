from __future__ import annotations

from typing import Any, Optional, Union

from mapquery.adapters.adapter_interface import CoordinateAdapter
from mapquery.adapters.factory import create_coordinate_adapter, resolve_backend
from mapquery.config import MapBackend
from mapquery.highlight.highlight_interface import HighlightProvider
from mapquery.legend.legend_interface import LegendProvider
from mapquery.registry import ProviderRegistry


class MapContext:
    """
    The live map handle together with the backend it belongs to.

    Everything that needs the active map receives a context explicitly; there
    is no module level "current view". The backend kind is carried here so
    callers dispatch on it rather than on which methods the handle happens to
    have.

    Args:
        backend: The backend the handle belongs to
        handle: The engine view or vector-tile map
        registry: Where highlight and legend providers for the handle are kept

    Raises:
        ValueError: If the handle is None
    """

    def __init__(
        self,
        backend: MapBackend,
        handle: Any,
        registry: Optional[ProviderRegistry] = None,
    ):
        if handle is None:
            raise ValueError(f"a map handle is required for the {backend.value} backend")
        self.backend = backend
        self.handle = handle
        self.registry = registry if registry is not None else ProviderRegistry()
        self._adapter = create_coordinate_adapter(backend)

    @property
    def adapter(self) -> CoordinateAdapter:
        return self._adapter

    @property
    def highlighter(self) -> HighlightProvider:
        return self.registry.highlight_provider(self.handle, self.backend)

    @property
    def legend(self) -> LegendProvider:
        return self.registry.legend_provider(self.handle, self.backend)

    def __repr__(self):
        return f"MapContext(backend={self.backend.value!r}, handle={self.handle!r})"


def create_map_context(
    handle: Any,
    backend: Optional[Union[MapBackend, str]] = None,
    registry: Optional[ProviderRegistry] = None,
) -> MapContext:
    """
    Create a context for a live map handle.

    Args:
        handle: The engine view or vector-tile map
        backend: The backend of the handle. Default is the configured backend.
        registry: A registry shared between contexts of the same map

    Returns:
        The map context

    Raises:
        ValueError: If the handle is None or the backend is unknown
    """
    return MapContext(resolve_backend(backend), handle, registry)
