"""
Element <-> node connectivity and its inversion.

The forward relation ``elements_to_nodes`` is a dense ``(n_elements,
nodes_in_element)`` integer array. Force assembly needs the inverse: for every
node, the (element, local node index) pairs that touch it. The inverse is
stored as a ragged array (``offsets`` + packed entries) built with a two-pass
counting sort:

1. count pass   - histogram of node incidences (unbuffered ``np.add.at``,
                  the numpy analogue of an atomic increment),
2. offset pass  - exclusive prefix sum of the counts,
3. fill pass    - every incidence is scattered into its node's private range.
                  Slot order within a node is fixed by a stable sort of the
                  flattened element-node list, so the result does not depend
                  on traversal order.

Once built, every node owns a disjoint output range, and node-level
reductions need no synchronisation.

Usage
-----
    from lgrlib.mesh import invert_connectivity

    conn = invert_connectivity(elements_to_nodes, n_nodes=5)
    elements, local = conn.node_elements(2)
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy import sparse

from lgrlib._errors import ConnectivityError

logger = logging.getLogger(__name__)


def validate_connectivity(elements_to_nodes, n_nodes: int,
                          nodes_in_element=None) -> np.ndarray:
    """Check a forward connectivity array and return it as ``int64``.

    Raises
    ------
    ConnectivityError
        On a wrong shape, a node index out of ``[0, n_nodes)``, a node
        repeated within one element, or a node no element references.
    """
    e2n = np.asarray(elements_to_nodes)
    if e2n.ndim != 2 or e2n.shape[0] == 0:
        raise ConnectivityError(
            f"elements_to_nodes must be a non-empty 2D array, got shape {e2n.shape}"
        )
    if not np.issubdtype(e2n.dtype, np.integer):
        raise ConnectivityError(
            f"elements_to_nodes must hold integers, got dtype {e2n.dtype}"
        )
    if nodes_in_element is not None and e2n.shape[1] != nodes_in_element:
        raise ConnectivityError(
            f"expected {nodes_in_element} nodes per element, got {e2n.shape[1]}"
        )
    if n_nodes <= 0:
        raise ConnectivityError(f"n_nodes must be positive, got {n_nodes}",
                                index=n_nodes, field='n_nodes')
    e2n = e2n.astype(np.int64)

    out_of_range = np.flatnonzero((e2n < 0) | (e2n >= n_nodes))
    if out_of_range.size:
        raw = e2n.ravel()[out_of_range[0]]
        element = out_of_range[0] // e2n.shape[1]
        raise ConnectivityError(
            f"node index {raw} of element {element} is outside [0, {n_nodes})",
            index=int(raw),
        )

    sorted_rows = np.sort(e2n, axis=1)
    repeated = np.flatnonzero(np.any(sorted_rows[:, 1:] == sorted_rows[:, :-1], axis=1))
    if repeated.size:
        element = int(repeated[0])
        raise ConnectivityError(
            f"element {element} lists a node more than once: {e2n[element].tolist()}",
            index=element,
        )

    referenced = np.zeros(n_nodes, dtype=bool)
    referenced[e2n.ravel()] = True
    orphans = np.flatnonzero(~referenced)
    if orphans.size:
        raise ConnectivityError(
            f"node {orphans[0]} is not referenced by any element",
            index=int(orphans[0]),
        )
    return e2n


@dataclass(frozen=True)
class Connectivity:
    """Forward and inverted adjacency of one mesh topology.

    All arrays are read-only; a new topology means a new Connectivity.

    Attributes
    ----------
    elements_to_nodes : ndarray of shape (n_elements, nodes_in_element)
        Forward relation.
    offsets : ndarray of shape (n_nodes + 1,)
        ``offsets[n]:offsets[n + 1]`` is node ``n``'s range in the packed arrays.
    node_elements_to_elements : ndarray of shape (n_elements * nodes_in_element,)
        Element id of each node-element entry.
    node_elements_to_nodes_in_element : ndarray, same shape
        Local index of the node within that element.
    """
    elements_to_nodes: np.ndarray
    offsets: np.ndarray
    node_elements_to_elements: np.ndarray
    node_elements_to_nodes_in_element: np.ndarray

    @property
    def n_nodes(self) -> int:
        return self.offsets.size - 1

    @property
    def n_elements(self) -> int:
        return self.elements_to_nodes.shape[0]

    @property
    def nodes_in_element(self) -> int:
        return self.elements_to_nodes.shape[1]

    @property
    def counts(self) -> np.ndarray:
        """Number of incident elements per node."""
        return np.diff(self.offsets)

    def node_elements(self, node: int):
        """Return ``(elements, local_indices)`` incident to ``node``."""
        lo, hi = self.offsets[node], self.offsets[node + 1]
        return (self.node_elements_to_elements[lo:hi],
                self.node_elements_to_nodes_in_element[lo:hi])

    def incidence_matrix(self) -> sparse.csr_matrix:
        """Node x element incidence as CSR, built straight from the ragged arrays.

        Entry ``(n, e)`` holds ``local + 1`` where ``local`` is the position of
        ``n`` in element ``e`` (the shift keeps local index 0 non-zero).
        """
        data = self.node_elements_to_nodes_in_element + 1
        return sparse.csr_matrix(
            (data, self.node_elements_to_elements.copy(), self.offsets.copy()),
            shape=(self.n_nodes, self.n_elements),
        )


def invert_connectivity(elements_to_nodes, n_nodes: int,
                        nodes_in_element=None) -> Connectivity:
    """Build the inverted node -> (element, local node) adjacency.

    Parameters
    ----------
    elements_to_nodes : array_like of shape (n_elements, nodes_in_element)
        Global node id of every element-node pair.
    n_nodes : int
        Number of nodes in the mesh.
    nodes_in_element : int or None
        Expected row length, checked when given.

    Returns
    -------
    Connectivity
    """
    e2n = validate_connectivity(elements_to_nodes, n_nodes, nodes_in_element)
    n_elements, nie = e2n.shape
    flat_nodes = e2n.ravel()

    # count pass
    counts = np.zeros(n_nodes, dtype=np.int64)
    np.add.at(counts, flat_nodes, 1)

    # offset pass
    offsets = np.zeros(n_nodes + 1, dtype=np.int64)
    np.cumsum(counts, out=offsets[1:])

    # fill pass: a stable sort by node id places flat entry k = element * nie + local
    # at offsets[node] + (number of earlier entries of the same node)
    order = np.argsort(flat_nodes, kind='stable')
    node_elements_to_elements = order // nie
    node_elements_to_nodes_in_element = order % nie

    logger.debug("Inverted connectivity: %d nodes, %d elements, %d entries",
                 n_nodes, n_elements, flat_nodes.size)

    for array in (e2n, offsets, node_elements_to_elements, node_elements_to_nodes_in_element):
        array.flags.writeable = False

    return Connectivity(
        elements_to_nodes=e2n,
        offsets=offsets,
        node_elements_to_elements=node_elements_to_elements,
        node_elements_to_nodes_in_element=node_elements_to_nodes_in_element,
    )
