"""
Initial velocity conditions for explicit dynamics.

Each IC sets the nodal velocity of a :class:`lgrlib._state.SimulationState`
in place from the current coordinates. ICs can be composed via CompositeIC;
later members overwrite earlier ones on the nodes they touch.

Usage
-----
    from lgrlib.initial_conditions import CompositeIC, ZeroVelocity, CustomVelocity

    ic = CompositeIC(
        ZeroVelocity(),
        CustomVelocity(lambda x: [x[0], 0.0, 0.0], nodes='piston'),
    )
    ic.apply(state)
"""

from abc import ABC, abstractmethod
from typing import Callable, Union

import numpy as np

from lgrlib._errors import ConfigurationError


class InitialCondition(ABC):
    """Abstract base for initial conditions on a simulation state."""

    @abstractmethod
    def apply(self, s) -> None:
        """Set nodal fields of ``s`` in place."""


def _target_nodes(s, nodes):
    if nodes is None:
        return slice(None)
    if isinstance(nodes, str):
        if nodes not in s.node_sets:
            raise ConfigurationError(
                f"Unknown node set {nodes!r}. Available: {sorted(s.node_sets)}"
            )
        return s.node_sets[nodes]
    return np.asarray(nodes, dtype=np.int64)


def _as_vector(value) -> np.ndarray:
    value = np.asarray(value, dtype=float)
    vec = np.zeros(value.shape[:-1] + (3,))
    vec[..., :value.shape[-1]] = value
    return vec


class CompositeIC(InitialCondition):
    """Apply multiple ICs in sequence."""

    def __init__(self, *ics: InitialCondition):
        self.ics = ics

    def apply(self, s) -> None:
        for ic in self.ics:
            ic.apply(s)


class ZeroVelocity(InitialCondition):
    """Set v = 0 on all nodes (or a node subset)."""

    def __init__(self, nodes=None):
        self.nodes = nodes

    def apply(self, s) -> None:
        s.v[_target_nodes(s, self.nodes)] = 0.0


class UniformVelocity(InitialCondition):
    """Set v = v_vec on all nodes (or a node subset).

    ``v_vec`` may have fewer than 3 components; missing ones are zero.
    """

    def __init__(self, v_vec, nodes=None):
        self.v_vec = _as_vector(v_vec)
        self.nodes = nodes

    def apply(self, s) -> None:
        s.v[_target_nodes(s, self.nodes)] = self.v_vec


class CustomVelocity(InitialCondition):
    """User-defined velocity via callable fn(x) -> vector.

    Parameters
    ----------
    fn : callable
        Function mapping a nodal position (length-3 array) to a velocity.
    nodes : str, array or None
        Node set name or node ids; all nodes if None.
    """

    def __init__(self, fn: Callable[[np.ndarray], Union[np.ndarray, list]],
                 nodes=None):
        self.fn = fn
        self.nodes = nodes

    def apply(self, s) -> None:
        target = _target_nodes(s, self.nodes)
        ids = np.arange(s.n_nodes)[target]
        s.v[ids] = np.array([_as_vector(self.fn(s.x[n].copy())) for n in ids]).reshape(-1, 3)
