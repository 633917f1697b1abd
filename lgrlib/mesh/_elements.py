"""
Geometry of linear simplex elements: bar (2 nodes), triangle (3) and
tetrahedron (4).

All functions take gathered nodal coordinates ``X`` of shape
``(n_elements, nodes_in_element, 3)`` and work on every element at once.

Usage
-----
    from lgrlib.mesh import element_type

    etype = element_type(4)          # tetrahedron
    V = etype.volume(X)
    grad_N = etype.basis_gradients(X)
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np

from lgrlib._errors import ConfigurationError, InversionError, check_positive
from lgrlib._registry import MethodRegistry


# Bar

def _bar_volume(X):
    return np.linalg.norm(X[:, 1] - X[:, 0], axis=-1)


def _bar_basis_gradients(X):
    d = X[:, 1] - X[:, 0]
    g = d / np.einsum('ei,ei->e', d, d)[:, None]
    return np.stack([-g, g], axis=1)


def _bar_h_art(V):
    return V


# Triangle (in the xy-plane; z must be zero)

def _triangle_volume(X):
    e1 = X[:, 1] - X[:, 0]
    e2 = X[:, 2] - X[:, 0]
    return 0.5 * (e1[:, 0] * e2[:, 1] - e1[:, 1] * e2[:, 0])


def _triangle_basis_gradients(X):
    e1 = X[:, 1] - X[:, 0]
    e2 = X[:, 2] - X[:, 0]
    twice_area = (e1[:, 0] * e2[:, 1] - e1[:, 1] * e2[:, 0])[:, None]
    zeros = np.zeros(X.shape[0])
    g1 = np.stack([e2[:, 1], -e2[:, 0], zeros], axis=-1) / twice_area
    g2 = np.stack([-e1[:, 1], e1[:, 0], zeros], axis=-1) / twice_area
    return np.stack([-(g1 + g2), g1, g2], axis=1)


def _triangle_h_art(V):
    # side of the equilateral triangle with the same area
    return np.sqrt(4.0 * V / np.sqrt(3.0))


# Tetrahedron

def _tetrahedron_edges(X):
    # columns are the edge vectors from node 0
    return np.swapaxes(X[:, 1:] - X[:, :1], 1, 2)


def _tetrahedron_volume(X):
    return np.linalg.det(_tetrahedron_edges(X)) / 6.0


def _tetrahedron_basis_gradients(X):
    # rows of D^-1 are the gradients of the barycentric coordinates 1..3
    g = np.linalg.inv(_tetrahedron_edges(X))
    g0 = -g.sum(axis=1, keepdims=True)
    return np.concatenate([g0, g], axis=1)


def _tetrahedron_h_art(V):
    # edge of the regular tetrahedron with the same volume
    return np.cbrt(12.0 * V / np.sqrt(2.0))


@dataclass(frozen=True)
class ElementType:
    """Geometry callbacks of one element shape."""
    name: str
    nodes_in_element: int
    signed_volume: Callable
    gradients: Callable
    h_art_from_volume: Callable
    spatial_dim: int = 3

    def volume(self, X, elements=None) -> np.ndarray:
        """Element measure (length, area, volume); must be strictly positive."""
        V = self.signed_volume(X)
        check_positive(V, InversionError, 'element', 'V', indices=elements,
                       detail=f"degenerate or inverted {self.name}")
        return V

    def basis_gradients(self, X) -> np.ndarray:
        """Shape function gradients, shape (n_elements, nodes_in_element, 3)."""
        return self.gradients(X)

    def h_art(self, V) -> np.ndarray:
        """Length scale used by the artificial viscosity."""
        return self.h_art_from_volume(V)

    def check_in_plane(self, values, field: str = 'x') -> None:
        """Reject nodal vectors with components outside the element's space.

        Triangles live in the xy-plane: a non-zero z coordinate (or z
        velocity) would be ignored by the geometry and raises
        :class:`ConfigurationError`.
        """
        values = np.asarray(values)
        if self.spatial_dim >= values.shape[-1]:
            return
        outside = np.any(values[:, self.spatial_dim:] != 0.0, axis=-1)
        if np.any(outside):
            node = int(np.flatnonzero(outside)[0])
            raise ConfigurationError(
                f"{self.name} meshes must lie in the xy-plane; node {node} has "
                f"{field} = {values[node].tolist()}"
            )


def h_min_from_gradients(grad_N) -> np.ndarray:
    """Inscribed-ball diameter ``2 / sum_i |grad N_i|``.

    For a simplex ``|grad N_i|`` is the opposite facet measure over ``d``
    times the volume, so the sum over nodes is the inverse inradius.
    """
    return 2.0 / np.linalg.norm(grad_N, axis=-1).sum(axis=-1)


ELEMENT_TYPES = MethodRegistry("element type")
ELEMENT_TYPES.register(2, ElementType('bar', 2, _bar_volume,
                                      _bar_basis_gradients, _bar_h_art))
ELEMENT_TYPES.register(3, ElementType('triangle', 3, _triangle_volume,
                                      _triangle_basis_gradients, _triangle_h_art,
                                      spatial_dim=2))
ELEMENT_TYPES.register(4, ElementType('tetrahedron', 4, _tetrahedron_volume,
                                      _tetrahedron_basis_gradients, _tetrahedron_h_art))


def element_type(nodes_in_element: int) -> ElementType:
    """Look up the element type for a node count (2, 3 or 4)."""
    return ELEMENT_TYPES[int(nodes_in_element)]


def gather_coordinates(x, elements_to_nodes) -> np.ndarray:
    """Nodal coordinates per element, shape (n_elements, nodes_in_element, 3)."""
    return np.asarray(x)[np.asarray(elements_to_nodes)]
