"""
Internal force assembly and nodal mass lumping.

Point -> point-node forces are independent per point. The node-level
reduction walks each node's range of the inverted adjacency
(:class:`lgrlib.mesh.Connectivity`) and sums the contributions of the points
of every incident element; each node writes only its own output, so the pass
needs no synchronisation. :func:`scatter_add_nodal_force` is the equivalent
element-order scatter-add, kept as a reference.
"""

import numpy as np

from lgrlib._errors import InversionError, check_positive


def _reduce_to_nodes(s, element_node_values):
    """Sum ``element_node_values[element, local]`` over each node's entries.

    ``element_node_values`` has shape (n_elements, nodes_in_element, ...).
    Every node has at least one entry (validated when the adjacency is built).
    """
    conn = s.connectivity
    gathered = element_node_values[conn.node_elements_to_elements,
                                   conn.node_elements_to_nodes_in_element]
    return np.add.reduceat(gathered, conn.offsets[:-1], axis=0)


def update_element_force(s) -> None:
    """Point-node forces ``f = -(sigma . grad_N) V``."""
    s.element_f[:] = -np.einsum('pij,pnj->pni', s.sigma, s.grad_N) * s.V[:, None, None]


def update_nodal_force(s) -> None:
    """Nodal internal force, gathered through the inverted adjacency."""
    per_element = s.element_f.reshape(
        s.n_elements, s.points_in_element, s.nodes_in_element, 3).sum(axis=1)
    s.f[:] = _reduce_to_nodes(s, per_element)


def scatter_add_nodal_force(s) -> np.ndarray:
    """Reference nodal force by scatter-adding point-node forces in element order."""
    f = np.zeros((s.n_nodes, 3))
    np.add.at(f, s.points_to_nodes(), s.element_f)
    return f


def update_nodal_mass(s) -> None:
    """Lumped mass: each point's ``rho V`` shared evenly by its element's nodes."""
    point_mass = (s.rho * s.V).reshape(s.n_elements, s.points_in_element).sum(axis=1)
    share = np.repeat((point_mass / s.nodes_in_element)[:, None], s.nodes_in_element, axis=1)
    mass = _reduce_to_nodes(s, share)
    check_positive(mass, InversionError, 'node', 'mass')
    s.mass[:] = mass


def update_a(s) -> None:
    """Acceleration from nodal force and lumped mass."""
    s.a[:] = s.f / s.mass[:, None]
