"""
Kinematic boundary conditions for explicit dynamics on simplex meshes.

Provides an abstract BoundaryCondition base class, the zero-acceleration
condition, node identification helpers and a BoundaryConditionSet container.
Conditions act on the nodal acceleration after it has been divided by the
lumped mass; the velocity and displacement updates then inherit the
constraint.

Usage
-----
    from lgrlib._boundary_conditions import (
        identify_boundary_nodes, BoundaryConditionSet, ZeroAccelerationBC,
    )

    left = identify_boundary_nodes(x, lambda p: abs(p[0]) < 1e-10)
    bc_set = BoundaryConditionSet()
    bc_set.add(ZeroAccelerationBC(axis=[1.0, 0.0, 0.0]), left)
    bc_set.apply_all(state)
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

import numpy as np

from lgrlib._errors import ConfigurationError


# ---------------------------------------------------------------------------
# Boundary identification helpers
# ---------------------------------------------------------------------------

def identify_boundary_nodes(x, criterion_fn: Callable) -> np.ndarray:
    """Return the ids of nodes whose position satisfies ``criterion_fn(x_n)``.

    Parameters
    ----------
    x : ndarray, shape (n_nodes, 3)
        Nodal coordinates.
    criterion_fn : callable
        Function taking one position and returning True/False.

    Examples
    --------
    >>> left = identify_boundary_nodes(x, lambda p: abs(p[0]) < 1e-10)
    """
    return np.array([n for n, p in enumerate(np.asarray(x)) if criterion_fn(p)],
                    dtype=np.int64)


def identify_box_boundaries(x, lb, ub, dim: Optional[int] = None,
                            tol: float = 1e-12) -> dict:
    """Nodes on the faces of an axis-aligned box ``[lb, ub]``.

    Parameters
    ----------
    x : ndarray, shape (n_nodes, 3)
        Nodal coordinates.
    lb, ub : float or sequence of float
        Lower and upper corner (a scalar applies to every axis).
    dim : int or None
        Number of coordinate axes to check (default 3).
    tol : float
        Distance below which a node counts as lying on a face.

    Returns
    -------
    dict
        ``'x-'``, ``'x+'``, ``'y-'``, ... mapped to sorted node id arrays.
    """
    x = np.asarray(x)
    d = dim if dim is not None else 3
    lb = np.broadcast_to(np.asarray(lb, dtype=float), (3,))
    ub = np.broadcast_to(np.asarray(ub, dtype=float), (3,))
    faces = {}
    for i, name in enumerate('xyz'[:d]):
        faces[f'{name}-'] = np.flatnonzero(x[:, i] <= lb[i] + tol)
        faces[f'{name}+'] = np.flatnonzero(x[:, i] >= ub[i] - tol)
    return faces


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class BoundaryCondition(ABC):
    """Base class for conditions on a node subset.

    Subclasses must implement ``apply()``. The ``target_nodes`` argument is
    supplied by the BoundaryConditionSet.
    """

    @abstractmethod
    def apply(self, s, target_nodes=None):
        """Apply the BC to the state for this step.

        Parameters
        ----------
        s : SimulationState
            Simulation state; modified in place.
        target_nodes : ndarray or None
            Node ids to constrain. If None, behavior is subclass-specific.

        Returns
        -------
        int
            Number of constrained nodes.
        """


# ---------------------------------------------------------------------------
# BoundaryConditionSet container
# ---------------------------------------------------------------------------

class BoundaryConditionSet:
    """Container managing multiple BCs for a simulation.

    BCs are applied in insertion order. Nodes may be given as an id array or
    as the name of a node set of the state.

    Usage
    -----
        bc_set = BoundaryConditionSet()
        bc_set.add(ZeroAccelerationBC([1, 0, 0]), 'x-')
        bc_set.add(ZeroAccelerationBC([0, 1, 0]), bottom_nodes)
        bc_set.apply_all(state)
    """

    def __init__(self):
        self._bcs: list[tuple[BoundaryCondition, Union[str, np.ndarray, None]]] = []

    def __len__(self):
        return len(self._bcs)

    def __iter__(self):
        return iter(self._bcs)

    def add(self, bc: BoundaryCondition,
            nodes: Union[str, np.ndarray, None] = None) -> 'BoundaryConditionSet':
        """Register a BC on ``nodes`` (all nodes if None).

        Returns self for method chaining.
        """
        if isinstance(nodes, str):
            self._bcs.append((bc, nodes))
        else:
            self._bcs.append((bc, None if nodes is None
                              else np.asarray(nodes, dtype=np.int64)))
        return self

    def _resolve(self, s, nodes):
        if nodes is None:
            return np.arange(s.n_nodes)
        if isinstance(nodes, str):
            if nodes not in s.node_sets:
                raise ConfigurationError(
                    f"Unknown node set {nodes!r}. Available: {sorted(s.node_sets)}"
                )
            return s.node_sets[nodes]
        return nodes

    def validate(self, s) -> None:
        """Check that every named node set exists and ids are in range."""
        for _, nodes in self._bcs:
            target = self._resolve(s, nodes)
            if target.size and (target.min() < 0 or target.max() >= s.n_nodes):
                raise ConfigurationError(
                    f"boundary node ids must lie in [0, {s.n_nodes})"
                )

    def apply_all(self, s) -> dict:
        """Apply all BCs in order.

        Returns
        -------
        dict
            Diagnostics keyed by BC name.
        """
        diagnostics = {}
        for i, (bc, nodes) in enumerate(self._bcs):
            result = bc.apply(s, target_nodes=self._resolve(s, nodes))
            diagnostics[f"bc_{i}_{type(bc).__name__}"] = result
        return diagnostics


# ---------------------------------------------------------------------------
# Zero-acceleration condition
# ---------------------------------------------------------------------------

class ZeroAccelerationBC(BoundaryCondition):
    """Remove the acceleration component along ``axis`` on the target nodes.

    ``a <- a - (a . n) n`` with ``n = axis / |axis|``. Starting from a
    velocity with no component along ``axis``, the nodes then never move in
    that direction.

    Parameters
    ----------
    axis : int or sequence of float
        Coordinate index (0, 1, 2) or a direction vector.
    """

    def __init__(self, axis):
        if np.isscalar(axis):
            if int(axis) not in (0, 1, 2):
                raise ConfigurationError(f"axis index must be 0, 1 or 2, got {axis!r}")
            direction = np.zeros(3)
            direction[int(axis)] = 1.0
        else:
            direction = np.zeros(3)
            given = np.asarray(axis, dtype=float)
            direction[:given.size] = given
        norm = np.linalg.norm(direction)
        if not norm > 0.0:
            raise ConfigurationError("zero acceleration axis must be non-zero")
        self.axis = direction / norm

    def apply(self, s, target_nodes=None):
        nodes = np.arange(s.n_nodes) if target_nodes is None else target_nodes
        a = s.a[nodes]
        s.a[nodes] = a - np.outer(a @ self.axis, self.axis)
        return int(len(nodes))
