from __future__ import annotations

from typing import Optional, Union

from mapquery.adapters.adapter_interface import CoordinateAdapter
from mapquery.adapters.engine import EngineCoordinateAdapter
from mapquery.adapters.vector_tile import VectorTileCoordinateAdapter
from mapquery.config import MapBackend, get_map_implementation


def resolve_backend(backend: Optional[Union[MapBackend, str]] = None) -> MapBackend:
    """
    Resolve a backend name to a MapBackend.

    Args:
        backend: A MapBackend, its string value, or None for the configured backend

    Returns:
        The MapBackend

    Raises:
        ValueError: If the name is not a known backend
    """
    if backend is None:
        return get_map_implementation()
    if isinstance(backend, MapBackend):
        return backend
    try:
        return MapBackend(str(backend).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown map backend: {backend}")


def create_coordinate_adapter(
    backend: Optional[Union[MapBackend, str]] = None,
) -> CoordinateAdapter:
    """
    Create the coordinate adapter for a backend.

    Args:
        backend: The backend; the configured one if None

    Returns:
        A new CoordinateAdapter

    Raises:
        ValueError: If the backend is unknown
    """
    backend = resolve_backend(backend)
    if backend == MapBackend.VECTOR_TILE:
        return VectorTileCoordinateAdapter()
    return EngineCoordinateAdapter()
