# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
""" Homogeneous affines: apply to points, split, build, invert, chain

An affine for 3D points is a (4, 4) array ``[[M, t], [0, 0, 0, 1]]`` with
``M`` the (3, 3) rotation / zoom / shear part and ``t`` the translation.
"""
from functools import reduce

import numpy as np
import numpy.linalg as npl


class AffineError(ValueError):
    """ An affine cannot be built, inverted or applied """


def apply_affine(aff, pts):
    """ Transform the points `pts` with the affine `aff`

    Parameters
    ----------
    aff : (N, N) array-like
        Homogeneous affine; (4, 4) for 3D points.
    pts : (..., N-1) array-like
        Points, with the coordinates on the last axis.  Streamlines are
        (P, 3) arrays.

    Returns
    -------
    transformed_pts : (..., N-1) array
        Same shape as `pts`.  float32 points and a float32 affine give
        float32 points.

    Examples
    --------
    >>> aff = np.array([[0, 2, 0, 10], [3, 0, 0, 11], [0, 0, 4, 12], [0, 0, 0, 1]])
    >>> apply_affine(aff, [[1, 2, 3], [2, 3, 4]])
    array([[14, 14, 24],
           [16, 17, 28]])
    """
    aff = np.asarray(aff)
    pts = np.asarray(pts)
    shape = pts.shape
    matrix, vector = to_matvec(aff)
    res = np.dot(pts.reshape((-1, shape[-1])), matrix.T) + vector
    return res.reshape(shape)


def to_matvec(transform):
    """ Linear part and translation of the homogeneous `transform`

    >>> to_matvec(from_matvec(np.diag([2, 3, 4]), [9, 10, 11]))
    (array([[2, 0, 0],
           [0, 3, 0],
           [0, 0, 4]]), array([ 9, 10, 11]))
    """
    transform = np.asarray(transform)
    nrows = transform.shape[0] - 1
    ncols = transform.shape[1] - 1
    return transform[:nrows, :ncols], transform[:nrows, ncols]


def from_matvec(matrix, vector=None):
    """ Homogeneous affine from a linear part and a translation

    Parameters
    ----------
    matrix : (N, M) array-like
    vector : None or (N,) array-like, optional
        Translation; None for no translation.

    Returns
    -------
    xform : (N + 1, M + 1) array
        Same dtype as `matrix`.

    Examples
    --------
    >>> from_matvec(np.diag([2, 3, 4]), [9, 10, 11])
    array([[ 2,  0,  0,  9],
           [ 0,  3,  0, 10],
           [ 0,  0,  4, 11],
           [ 0,  0,  0,  1]])
    """
    matrix = np.asarray(matrix)
    nrows, ncols = matrix.shape
    xform = np.zeros((nrows + 1, ncols + 1), dtype=matrix.dtype)
    xform[:nrows, :ncols] = matrix
    if vector is not None:
        xform[:nrows, ncols] = vector
    xform[nrows, ncols] = 1
    return xform


def inv_affine(aff):
    """ Inverse of affine `aff`, keeping its dtype

    Raises
    ------
    AffineError
        If `aff` is singular.
    """
    aff = np.asarray(aff)
    try:
        return npl.inv(aff)
    except npl.LinAlgError as e:
        raise AffineError(f'Affine is not invertible:\n{aff}') from e


def dot_reduce(*args):
    """ Matrix product of all `args`, ``args[0] @ args[1] @ ... @ args[-1]``

    The rightmost product is done first, so ``dot_reduce(A, B, C)`` applied
    to a point applies ``C`` first, then ``B``, then ``A``.
    """
    return reduce(lambda right, left: np.dot(left, right), args[::-1])
