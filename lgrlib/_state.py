"""
SimulationState: owned field arrays of one explicit-dynamics run.

The state is a plain container. Passes in :mod:`lgrlib.operators` read and
mutate its arrays in place; the only behaviour here is lifecycle (resize when
the topology changes, bulk fills, snapshots of timestep-scoped history).

Index spaces
------------
node          : ``n_nodes``
element       : ``n_elements``
point         : ``n_elements * points_in_element``; point ``p`` lies in
                element ``p // points_in_element``
point-node    : ``(point, node_in_element)`` pairs, stored as the trailing
                axes of ``grad_N`` and ``element_f``

Vectors are always stored with 3 components; bars use ``x`` only and
triangles use ``x, y``.
"""

import numpy as np

from lgrlib.operators._tensor import identity_like


NODE_VECTOR_FIELDS = ('x', 'u', 'v', 'a', 'f')
NODE_SCALAR_FIELDS = ('mass',)
ELEMENT_SCALAR_FIELDS = ('h_min', 'h_art')
POINT_TENSOR_FIELDS = ('sigma', 'symm_grad_v', 'F_total', 'Fp_total')
POINT_SCALAR_FIELDS = ('V', 'rho', 'e', 'p', 'K', 'G', 'c', 'nu_art',
                       'element_dt', 'rho_e_dot', 'eqps', 'W')
POINT_NODE_FIELDS = ('grad_N', 'element_f')


class SimulationState:
    """Per-node, per-element and per-point fields plus the simulation clock.

    Attributes
    ----------
    time, dt : float
        Current simulated time and the size of the last step.
    max_stable_dt : float
        Global stable time step (before the CFL factor).
    next_file_output_time : float
        End of the current output interval; steps never cross it.
    n : int
        Completed step count.
    """

    def __init__(self):
        self.n_nodes = 0
        self.n_elements = 0
        self.nodes_in_element = 0
        self.points_in_element = 1

        self.elements_to_nodes = np.zeros((0, 0), dtype=np.int64)
        self.element_material = np.zeros(0, dtype=np.int64)
        self.connectivity = None
        self.node_sets: dict[str, np.ndarray] = {}
        self.element_sets: dict[int, np.ndarray] = {}

        self.time = 0.0
        self.dt = 0.0
        self.max_stable_dt = 0.0
        self.next_file_output_time = 0.0
        self.n = 0

        self.resize(0, 0, 0, 1)

    @property
    def n_points(self) -> int:
        return self.n_elements * self.points_in_element

    def resize(self, n_nodes: int, n_elements: int, nodes_in_element: int,
               points_in_element: int = 1) -> 'SimulationState':
        """(Re)allocate every field array for the given index-space sizes.

        Field contents are zeroed; callers refill them afterwards.
        """
        self.n_nodes = int(n_nodes)
        self.n_elements = int(n_elements)
        self.nodes_in_element = int(nodes_in_element)
        self.points_in_element = int(points_in_element)
        n_points = self.n_points

        for name in NODE_VECTOR_FIELDS:
            setattr(self, name, np.zeros((self.n_nodes, 3)))
        for name in NODE_SCALAR_FIELDS:
            setattr(self, name, np.zeros(self.n_nodes))
        for name in ELEMENT_SCALAR_FIELDS:
            setattr(self, name, np.zeros(self.n_elements))
        for name in POINT_TENSOR_FIELDS:
            setattr(self, name, np.zeros((n_points, 3, 3)))
        for name in POINT_SCALAR_FIELDS:
            setattr(self, name, np.zeros(n_points))
        for name in POINT_NODE_FIELDS:
            setattr(self, name, np.zeros((n_points, self.nodes_in_element, 3)))
        return self

    # Index helpers

    def elements_to_points(self, elements=None) -> np.ndarray:
        """Point ids of ``elements`` (all elements by default), shape (E, points_in_element)."""
        if elements is None:
            elements = np.arange(self.n_elements)
        elements = np.asarray(elements, dtype=np.int64)
        return elements[:, None] * self.points_in_element + np.arange(self.points_in_element)

    def points_to_elements(self) -> np.ndarray:
        """Element id of every point."""
        return np.arange(self.n_points) // self.points_in_element

    def points_to_nodes(self) -> np.ndarray:
        """Global node id of every point-node pair, shape (n_points, nodes_in_element)."""
        return self.elements_to_nodes[self.points_to_elements()]

    def material_points(self, material: int) -> np.ndarray:
        """Point ids of every element assigned to ``material``."""
        elements = self.element_sets.get(material, np.zeros(0, dtype=np.int64))
        return self.elements_to_points(elements).ravel()

    # Bulk fills and snapshots

    def fill(self, name: str, value) -> None:
        """Set every entry of field ``name`` to ``value``."""
        getattr(self, name)[...] = value

    def fill_identity(self, name: str) -> None:
        """Set every tensor of field ``name`` to the identity."""
        setattr(self, name, identity_like(getattr(self, name).shape[0]))

    def fill_points(self, name: str, value, points) -> None:
        """Set field ``name`` to ``value`` on a subset of points."""
        getattr(self, name)[points] = value

    def snapshot(self, name: str) -> np.ndarray:
        """Private copy of a field, e.g. velocity before the predictor pass."""
        return getattr(self, name).copy()

    def restore(self, name: str, values) -> None:
        """Copy ``values`` back into field ``name``."""
        getattr(self, name)[...] = values
