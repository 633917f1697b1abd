"""Batched 3x3 tensor helpers; every function acts on arrays of shape (..., 3, 3)."""

import numpy as np

IDENTITY = np.eye(3)


def identity_like(n: int) -> np.ndarray:
    """Stack of ``n`` identity tensors."""
    return np.broadcast_to(IDENTITY, (n, 3, 3)).copy()


def trace(A):
    return np.trace(A, axis1=-2, axis2=-1)


def transpose(A):
    return np.swapaxes(A, -1, -2)


def symmetric_part(A):
    return 0.5 * (A + transpose(A))


def deviatoric_part(A):
    return A - (trace(A) / 3.0)[..., None, None] * IDENTITY


def spherical(s):
    """Isotropic tensors ``s * I`` for an array of scalars ``s``."""
    return np.asarray(s)[..., None, None] * IDENTITY


def inner_product(A, B):
    """Double contraction ``A : B``."""
    return np.einsum('...ij,...ij->...', A, B)


def self_times_transpose(F):
    """Left Cauchy-Green tensor ``F F^T``."""
    return F @ transpose(F)


def symmetric_log(C):
    """Matrix logarithm of symmetric positive definite tensors."""
    w, Q = np.linalg.eigh(C)
    return (Q * np.log(w)[..., None, :]) @ transpose(Q)
