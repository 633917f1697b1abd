"""Mesh topology: connectivity inversion and simplex element geometry."""

from lgrlib.mesh._connectivity import (
    Connectivity,
    invert_connectivity,
    validate_connectivity,
)
from lgrlib.mesh._elements import (
    ELEMENT_TYPES,
    ElementType,
    element_type,
    gather_coordinates,
    h_min_from_gradients,
)

__all__ = [
    'Connectivity',
    'invert_connectivity',
    'validate_connectivity',
    'ELEMENT_TYPES',
    'ElementType',
    'element_type',
    'gather_coordinates',
    'h_min_from_gradients',
]
