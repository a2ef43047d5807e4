# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Utilities for calculating and reconciling axis orientations

An orientation is a (3, 2) array with one row per voxel axis.  The first value
in each row is the world (RAS+) axis that the voxel axis runs along, the
second is :data:`NORMAL` (1) when it runs in the positive direction of that
world axis and :data:`REVERSED` (-1) otherwise.  A row of NaN means the voxel
axis could not be matched to any world axis.

Axis codes name the world direction each voxel axis points to, e.g. ``'LPS'``
for the TrackVis default voxel order.
"""

import numpy as np
import numpy.linalg as npl

NORMAL = 1
REVERSED = -1

#: (negative, positive) labels for the three RAS+ world axes
RAS_LABELS = tuple(zip('LPI', 'RAS'))


class OrientationError(Exception):
    pass


def io_orientation(affine, tol=None):
    """Orientation of the voxel axes of `affine` in world space

    Parameters
    ----------
    affine : (q + 1, p + 1) or (3, 3) array-like
        Affine from ``p`` voxel axes to ``q`` world axes, usually (4, 4), or
        its (3, 3) linear part.
    tol : None or float, optional
        Singular values of the normalized linear part at or below `tol` are
        dropped.  Default is ``S.max() * max(q, p) * eps``, with ``S`` the
        singular values.

    Returns
    -------
    ornt : (p, 2) array
        For each voxel axis, the world axis it is closest to and
        :data:`NORMAL` or :data:`REVERSED`.  Voxel axes left without a world
        axis (from a rank deficient affine) get a row of NaN.

    Examples
    --------
    >>> io_orientation(np.diag([-2, 3, 0.5, 1]))
    array([[ 0., -1.],
           [ 1.,  1.],
           [ 2.,  1.]])
    """
    affine = np.asarray(affine, dtype=np.float64)
    if affine.shape == (3, 3):
        RZS = affine
    else:
        q, p = affine.shape[0] - 1, affine.shape[1] - 1
        RZS = affine[:q, :p]
    p = RZS.shape[1]
    zooms = np.sqrt(np.sum(RZS * RZS, axis=0))
    # Zero zooms only occur for all-zero columns, which stay as they are
    zooms[zooms == 0] = 1
    RS = RZS / zooms
    # Polar decomposition: closest shearless matrix R to RS
    P, S, Qs = npl.svd(RS, full_matrices=False)
    if tol is None:
        tol = S.max() * max(RS.shape) * np.finfo(S.dtype).eps
    keep = S > tol
    R = np.dot(P[:, keep], Qs[keep])
    # The row index of abs max R[:, N] is the output axis changing most as
    # input axis N changes.  Used output axes are removed as we go, so ties
    # go to the first input axis and the first maximal row.
    ornt = np.ones((p, 2), dtype=np.int8) * np.nan
    for in_ax in range(p):
        col = R[:, in_ax]
        if not np.allclose(col, 0):
            out_ax = np.argmax(np.abs(col))
            ornt[in_ax, 0] = out_ax
            ornt[in_ax, 1] = REVERSED if col[out_ax] < 0 else NORMAL
            R[out_ax, :] = 0
    return ornt


def ornt_transform(start_ornt, end_ornt):
    """Orientation mapping `start_ornt` to `end_ornt`

    Start axis ``i`` maps to the end axis along the same world axis, flipped
    when the two run in opposite directions.  An orientation composed with
    itself gives the identity.

    Raises
    ------
    ValueError
        If the shapes differ or a world axis of `end_ornt` is missing from
        `start_ornt`.

    Examples
    --------
    >>> ornt_transform([[0, 1], [1, 1], [2, -1]], [[1, 1], [0, 1], [2, 1]])
    array([[ 1,  1],
           [ 0,  1],
           [ 2, -1]])
    """
    start_ornt = np.asarray(start_ornt)
    end_ornt = np.asarray(end_ornt)
    if start_ornt.shape != end_ornt.shape:
        raise ValueError('The orientations must have the same shape')
    if start_ornt.shape[1] != 2:
        raise ValueError(f'Invalid shape for an orientation: {start_ornt.shape}')
    result = np.empty_like(start_ornt)
    for end_in_idx, (end_out_idx, end_flip) in enumerate(end_ornt):
        for start_in_idx, (start_out_idx, start_flip) in enumerate(start_ornt):
            if end_out_idx == start_out_idx:
                flip = NORMAL if start_flip == end_flip else REVERSED
                result[start_in_idx, :] = [end_in_idx, flip]
                break
        else:
            raise ValueError(f'Unable to find out axis {end_out_idx} in start_ornt')
    return result


def inv_ornt_aff(ornt, shape):
    """Voxel affine undoing the axis swaps and flips of `ornt`

    On a grid of shape `shape` reoriented by `ornt`, the returned affine takes
    a voxel of the reoriented grid back to the matching voxel of the original
    grid.  A flipped axis of length ``n`` maps ``i`` to ``n - 1 - i``, a flip
    around the grid center ``(n - 1) / 2``.

    Parameters
    ----------
    ornt : (p, 2) array-like
        ``ornt[:, 0]`` is the axis permutation, ``ornt[:, 1]`` the flips.
    shape : sequence of at least p ints

    Returns
    -------
    transform_affine : (p + 1, p + 1) array

    Raises
    ------
    OrientationError
        If `ornt` has a dropped (NaN) axis.

    Examples
    --------
    >>> inv_ornt_aff([[0, -1], [1, 1], [2, 1]], (10, 10, 10))
    array([[-1.,  0.,  0.,  9.],
           [ 0.,  1.,  0.,  0.],
           [ 0.,  0.,  1.,  0.],
           [ 0.,  0.,  0.,  1.]])
    """
    ornt = np.asarray(ornt)
    if np.any(np.isnan(ornt)):
        raise OrientationError('We cannot invert orientation transform')
    p = ornt.shape[0]
    shape = np.array(shape)[:p]
    # undo the transpose first, then the flips
    axis_transpose = [int(v) for v in ornt[:, 0]]
    undo_reorder = np.eye(p + 1)[axis_transpose + [p], :]
    undo_flip = np.diag(list(ornt[:, 1]) + [1.0])
    center_trans = -(shape - 1) / 2.0
    undo_flip[:p, p] = (ornt[:, 1] * center_trans) - center_trans
    return np.dot(undo_flip, undo_reorder)


def ornt2axcodes(ornt, labels=None):
    """Axis codes of orientation `ornt`

    Parameters
    ----------
    ornt : (N, 2) array-like
        Orientation, see :func:`io_orientation`.
    labels : None or sequence of (2,) sequences, optional
        (negative, positive) labels of each world axis.  Default is
        :data:`RAS_LABELS`.

    Returns
    -------
    axcodes : tuple
        Label of the direction each voxel axis points to; None for a dropped
        axis.

    Raises
    ------
    ValueError
        For a non integer axis or a direction other than -1 or 1.

    Examples
    --------
    >>> ornt2axcodes([[1, 1], [0, -1], [2, 1]])
    ('A', 'L', 'S')
    """
    labels = RAS_LABELS if labels is None else labels
    axcodes = []
    for axis, direction in np.asarray(ornt, dtype=np.float64):
        if np.isnan(axis):
            axcodes.append(None)
        elif axis != int(axis):
            raise ValueError(f'Non integer axis number {axis}')
        elif direction not in (NORMAL, REVERSED):
            raise ValueError(f'Direction should be -1 or 1, not {direction}')
        else:
            negative, positive = labels[int(axis)]
            axcodes.append(positive if direction == NORMAL else negative)
    return tuple(axcodes)


def axcodes2ornt(axcodes, labels=None):
    """Orientation from axis codes, the inverse of :func:`ornt2axcodes`

    Parameters
    ----------
    axcodes : str or sequence
        One code per voxel axis, e.g. ``'LPS'``; None for a dropped axis.
    labels : None or sequence of (2,) sequences, optional
        Default is :data:`RAS_LABELS`.

    Raises
    ------
    ValueError
        If a code is not a label, or labels are repeated.

    Examples
    --------
    >>> axcodes2ornt('SAR')
    array([[2., 1.],
           [1., 1.],
           [0., 1.]])
    """
    labels = RAS_LABELS if labels is None else labels
    all_labels = [label for pair in labels for label in pair]
    if len(all_labels) != len(set(all_labels)):
        raise ValueError(f'Duplicate labels in {labels}')
    ornt = np.full((len(axcodes), 2), np.nan)
    for i, code in enumerate(axcodes):
        if code is None:
            continue
        for axis, (negative, positive) in enumerate(labels):
            if code == positive:
                ornt[i] = [axis, NORMAL]
                break
            if code == negative:
                ornt[i] = [axis, REVERSED]
                break
        else:
            raise ValueError(f'Axis code {code!r} is not one of {all_labels}')
    return ornt


def aff2axcodes(aff, labels=None, tol=None):
    """Axis codes of the voxel axes of `aff`

    ``ornt2axcodes(io_orientation(aff, tol), labels)``; this is how the voxel
    order of a ``vox_to_ras`` affine is found.

    Examples
    --------
    >>> aff = [[0,1,0,10],[-1,0,0,20],[0,0,1,30],[0,0,0,1]]
    >>> aff2axcodes(aff)
    ('P', 'R', 'S')
    """
    ornt = io_orientation(aff, tol)
    return ornt2axcodes(ornt, labels)
