"""
Element markers derived from attribute filters.

A filter is either None ("match all attributes") or a collection of
attribute values. Resolving a filter against the mesh attribute table gives a
0/1 int32 marker per element that integrator kernels multiply into their
local vectors.
"""

from typing import Dict, Iterable, Optional
import numpy as onp

from feform import logger


def normalize_filter(attr_filter: Optional[Iterable[int]]) -> Optional[frozenset]:
    """Return None for "match all" or a frozenset of int attribute values."""
    if attr_filter is None:
        return None
    if isinstance(attr_filter, (int, onp.integer)):
        return frozenset([int(attr_filter)])
    return frozenset(int(a) for a in attr_filter)


def attribute_filter_from_marker(marker) -> frozenset:
    """Convert an attribute marker array into a filter.

    ``marker[a - 1] != 0`` selects attribute ``a`` (1-based attributes).

    Examples
    --------
    >>> sorted(attribute_filter_from_marker([0, 1, 1]))
    [2, 3]
    """
    marker = onp.asarray(marker).reshape(-1)
    return frozenset(int(i) + 1 for i in onp.nonzero(marker)[0])


def resolve_markers(attributes, attr_filter: Optional[Iterable[int]] = None) -> onp.ndarray:
    """Per-element inclusion markers for an attribute filter.

    Parameters
    ----------
    attributes : NDArray
        Attribute value per element, shape (num_cells,)
    attr_filter : iterable of int, optional
        Attribute values to include; None includes every element

    Returns
    -------
    markers : onp.ndarray
        int32 array of shape (num_cells,) with 1 where the element is included

    Notes
    -----
    An empty filter is not an error: the integrator simply contributes nothing.
    """
    attributes = onp.asarray(attributes).reshape(-1)
    attr_filter = normalize_filter(attr_filter)

    if attr_filter is None:
        return onp.ones(attributes.shape[0], dtype=onp.int32)

    if len(attr_filter) == 0:
        logger.debug("Empty attribute filter, integrator selects no elements")
        return onp.zeros(attributes.shape[0], dtype=onp.int32)

    markers = onp.isin(attributes, onp.fromiter(attr_filter, dtype=onp.int64)).astype(onp.int32)
    if attributes.shape[0] > 0 and not markers.any():
        logger.debug(f"Attribute filter {sorted(attr_filter)} matches no elements")
    return markers


class MarkerCache:
    """Lazily built markers, one per registered integrator entry.

    Markers are a pure function of (attribute table, filter), so dropping the
    cache never changes results; it is cleared whenever the entry list or the
    attribute table changes.
    """
    def __init__(self):
        self._markers: Dict[int, onp.ndarray] = {}

    def get(self, index: int, attributes, attr_filter) -> onp.ndarray:
        if index not in self._markers:
            self._markers[index] = resolve_markers(attributes, attr_filter)
        return self._markers[index]

    def invalidate(self) -> None:
        self._markers.clear()

    def __contains__(self, index: int) -> bool:
        return index in self._markers

    def __len__(self) -> int:
        return len(self._markers)
