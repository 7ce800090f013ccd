"""Process-wide configuration for mapquery.

Settings are read from ``MAPQUERY_*`` environment variables (or a ``.env`` file)
once per process. The backend flag in particular is expected to stay stable for
the lifetime of the process; changing the environment afterwards has no effect
unless ``get_settings.cache_clear()`` is called.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MapBackend(str, Enum):
    """
    The map rendering backends mapquery can drive.

    ENGINE is a GIS engine view working in a projected CRS (meters).
    VECTOR_TILE is a WebGL vector-tile map working in WGS84 (degrees).
    """

    ENGINE = "engine"
    VECTOR_TILE = "vector-tile"


class Settings(BaseSettings):
    """Settings loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="MAPQUERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    map_impl: MapBackend = MapBackend.ENGINE
    working_crs: str = "EPSG:3857"

    wms_url: str = ""

    # interaction tuning
    click_tolerance: int = 5
    click_page_size: int = 50
    box_select_size: int = 200
    box_select_page_size: int = 1000
    box_select_min_zoom: float = 7
    polygon_page_size: int = 100
    max_features: int = 10000

    # network
    geometry_field_ttl: float = 24 * 60 * 60
    request_timeout: float = 30.0

    @field_validator("map_impl", mode="before")
    @classmethod
    def _default_empty_backend(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return MapBackend.ENGINE
        if isinstance(value, str):
            return value.strip().lower()
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def get_map_implementation() -> MapBackend:
    """
    Get the active map backend.

    Returns:
        The MapBackend selected by ``MAPQUERY_MAP_IMPL``; ENGINE when unset or empty
    """
    return get_settings().map_impl
