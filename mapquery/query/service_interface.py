from __future__ import annotations

from abc import ABCMeta, abstractmethod
from typing import Any, Dict, List, Optional

from mapquery.constructs.polygon import SpatialFilter
from mapquery.utils.crs import WGS84


class LayerQueryService(metaclass=ABCMeta):
    """
    Abstract base class for the service answering spatial feature queries.

    Implementations are blocking; the orchestrator runs them in worker threads
    so one slow or failing layer never holds up the others.
    """

    @property
    def output_crs(self) -> str:
        """The CRS of the geometries in returned features. Default is WGS84."""
        return WGS84

    @abstractmethod
    def query_features(
        self,
        type_name: str,
        spatial_filter: SpatialFilter,
        page_size: int,
        paginate: bool = False,
        max_features: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Find the features of one feature type intersecting a spatial filter.

        Args:
            type_name: The feature type to query
            spatial_filter: The WGS84 filter
            page_size: Features per request
            paginate: Keep requesting pages until a short page (or max_features) is reached
            max_features: The ceiling for paginated queries

        Returns:
            GeoJSON feature dicts in the order the service returned them

        Raises:
            requests.RequestException: Or any other exception, on transport failure
        """
