from __future__ import annotations

from typing import List, Sequence

from mapquery.constructs.feature import HighlightFeature, QueryFeature


class SelectionState:
    """
    The ordered set of currently selected features.

    Features are identified by ``QueryFeature.key`` (layer title plus
    ``ogc_fid``), so re-selecting a feature in additive mode never duplicates it.
    """

    def __init__(self):
        self._features: List[QueryFeature] = []

    @property
    def features(self) -> List[QueryFeature]:
        return list(self._features)

    @property
    def keys(self) -> List[str]:
        return [f.key for f in self._features]

    def __len__(self) -> int:
        return len(self._features)

    def __bool__(self) -> bool:
        return bool(self._features)

    def apply(self, features: Sequence[QueryFeature], additive: bool = False) -> bool:
        """
        Merge a query's results into the selection.

        * Not additive, no results: the selection is cleared.
        * Not additive, results: the selection is replaced by the results.
        * Additive: results whose key is not already selected are appended; if
          there are none, the selection is left untouched. Results are only
          compared against the current selection, not against each other.

        Args:
            features: The query results, in display order
            additive: Whether to union with the current selection

        Returns:
            True if the selection changed and highlights need redrawing
        """
        if not additive:
            self._features = list(features)
            return True

        existing = set(self.keys)
        new_features = [f for f in features if f.key not in existing]

        if not new_features:
            return False

        self._features.extend(new_features)
        return True

    def remove_layer(self, layer_title: str) -> bool:
        """
        Drop the features of a layer, e.g. when it is turned off.

        Returns:
            True if anything was removed
        """
        remaining = [f for f in self._features if f.layer_title != layer_title]
        if len(remaining) == len(self._features):
            return False
        self._features = remaining
        return True

    def clear(self) -> None:
        self._features = []

    def highlight_features(self) -> List[HighlightFeature]:
        """The selected features that have a geometry, ready to highlight."""
        return [f.to_highlight_feature() for f in self._features if f.geometry]
