"""
Exceptions raised by lgrlib.

None of these are recoverable inside the solver: an explicit integrator only
produces meaningful results when every invariant holds at every step, so the
pipeline stops at the first violation and hands the error to the caller.

Usage
-----
    from lgrlib._errors import InvariantViolation

    try:
        sim.run()
    except InvariantViolation as err:
        print(err.index_space, err.index, err.field, err.value)
"""

import numpy as np


class LgrError(Exception):
    """Base class for all lgrlib errors."""


class ConnectivityError(LgrError, ValueError):
    """Malformed element->node connectivity, detected before allocation.

    Parameters
    ----------
    message : str
        Human readable description.
    index : int or None
        The offending raw index (node id or element id).
    field : str
        Name of the input that failed validation.
    """

    def __init__(self, message: str, index=None, field: str = 'elements_to_nodes'):
        super().__init__(message)
        self.index = index
        self.field = field


class ConfigurationError(LgrError, ValueError):
    """Unsupported or incomplete setup, detected before the first step."""


class InvariantViolation(LgrError, ArithmeticError):
    """A numerical invariant failed during a pass.

    Parameters
    ----------
    index_space : str
        One of ``'point'``, ``'element'``, ``'node'`` or ``'simulation'``.
    index : int
        Offending entity in that index space.
    field : str
        Name of the violated quantity (e.g. ``'J'``, ``'rho'``).
    value : float
        The offending value.
    """

    def __init__(self, index_space: str, index: int, field: str, value: float,
                 detail: str = ''):
        self.index_space = index_space
        self.index = int(index)
        self.field = field
        self.value = float(value)
        msg = f"{field} = {self.value!r} at {index_space} {self.index}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class InversionError(InvariantViolation):
    """Non-positive Jacobian, volume or density (element inversion)."""


class NonPhysicalStateError(InvariantViolation):
    """Non-positive energy, pressure or modulus where a model requires it."""


class ReturnMappingError(InvariantViolation):
    """Plastic return mapping did not converge."""


class StableTimeStepError(InvariantViolation):
    """Stable time step is non-positive or above the sanity ceiling."""


def check_positive(values, error_cls, index_space: str, field: str,
                   indices=None, detail: str = ''):
    """Raise ``error_cls`` for the first entry of ``values`` that is not > 0.

    ``indices`` maps positions in ``values`` back to ids in ``index_space``
    when ``values`` is a subset of that space.
    """
    bad = np.flatnonzero(~(np.asarray(values) > 0.0))
    if bad.size == 0:
        return
    i = bad[0]
    index = indices[i] if indices is not None else i
    raise error_cls(index_space, index, field, np.asarray(values)[i], detail)
