# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
""" Voxel to world affines from the geometry fields of an image header

A TrackVis header is usually made to match a reference 3D image.  Image
headers in the NIfTI family describe the voxel grid with eight fields: ``dim``
and ``pixdim`` (8 values each), the quaternion parameters of the qform, and
the three rows of the sform.  The functions here turn those values into 4x4
affines; :meth:`trkio.header.TrkHeader.from_image_geometry` builds a header
from them.

Quaternions are in (w, x, y, z) order.
"""
import numpy as np

from .affines import AffineError

MAX_FLOAT = np.float64
FLOAT_EPS = np.finfo(np.float64).eps


def fill_positive(xyz, w2_thresh=None):
    """ Compute unit quaternion from last 3 values

    Parameters
    ----------
    xyz : iterable
       iterable containing 3 values, corresponding to quaternion x, y, z
    w2_thresh : None or float, optional
       threshold to determine if w squared is really negative.
       If None (default) then w2_thresh set equal to
       ``-np.finfo(np.float64).eps * 3``

    Returns
    -------
    wxyz : array shape (4,)
         Full 4 values of quaternion

    Raises
    ------
    ValueError
        If ``w * w`` is negative beyond `w2_thresh`.

    Notes
    -----
    If w, x, y, z are the values in the full quaternion, assumes w is
    positive.  ``w * w`` is ``1 - (x * x + y * y + z * z)`` and can be
    slightly negative from rounding, in which case w is set to 0, a 180
    degree rotation.

    Examples
    --------
    >>> wxyz = fill_positive([0, 0, 0])
    >>> np.all(wxyz == [1, 0, 0, 0])
    True
    """
    if len(xyz) != 3:
        raise ValueError('xyz should have length 3')
    if w2_thresh is None:
        w2_thresh = -FLOAT_EPS * 3
    xyz = np.asarray(xyz, dtype=MAX_FLOAT)
    w2 = 1.0 - np.dot(xyz, xyz)
    if w2 < 0:
        if w2 < w2_thresh:
            raise ValueError(f'w2 should be positive, but is {w2:e}')
        w = 0
    else:
        w = np.sqrt(w2)
    return np.r_[w, xyz]


def quat2mat(q):
    """ Calculate rotation matrix corresponding to quaternion

    Parameters
    ----------
    q : 4 element array-like
       (w, x, y, z) quaternion.  Need not be normalized.

    Returns
    -------
    M : (3,3) array
      Rotation matrix corresponding to input quaternion *q*

    Examples
    --------
    >>> M = quat2mat([0, 1, 0, 0]) # 180 degree rotn around axis 0
    >>> np.allclose(M, np.diag([1, -1, -1]))
    True
    """
    w, x, y, z = q
    Nq = w * w + x * x + y * y + z * z
    if Nq < FLOAT_EPS:
        return np.eye(3)
    s = 2.0 / Nq
    X = x * s
    Y = y * s
    Z = z * s
    wX = w * X
    wY = w * Y
    wZ = w * Z
    xX = x * X
    xY = x * Y
    xZ = x * Z
    yY = y * Y
    yZ = y * Z
    zZ = z * Z
    return np.array([[1.0 - (yY + zZ), xY - wZ, xZ + wY],
                     [xY + wZ, 1.0 - (xX + zZ), yZ - wX],
                     [xZ - wY, yZ + wX, 1.0 - (xX + yY)]])


def qform_affine(pixdim, quatern_bcd, qoffset):
    """ Affine from the quaternion parameters of an image header

    Parameters
    ----------
    pixdim : sequence of 8 floats
        ``pixdim[0]`` is the qfac, the sign of the third axis, and
        ``pixdim[1:4]`` are the voxel sizes.
    quatern_bcd : sequence of 3 floats
        x, y, z of the rotation quaternion.
    qoffset : sequence of 3 floats
        Translation.

    Returns
    -------
    affine : (4, 4) array

    Raises
    ------
    AffineError
        If a voxel size is negative or the qfac is neither 1 nor -1.
    """
    pixdim = np.asarray(pixdim, dtype=np.float64)
    R = quat2mat(fill_positive(quatern_bcd))
    vox = pixdim[1:4].copy()
    if np.any(vox < 0):
        raise AffineError('pixdims[1,2,3] should be positive')
    qfac = pixdim[0]
    if qfac not in (-1, 1):
        raise AffineError(f'qfac (pixdim[0]) should be 1 or -1, not {qfac}')
    vox[-1] *= qfac
    out = np.eye(4)
    out[:3, :3] = np.dot(R, np.diag(vox))
    out[:3, 3] = qoffset
    return out


def sform_affine(srow_x, srow_y, srow_z):
    """ Affine whose first three rows are `srow_x`, `srow_y`, `srow_z`

    Examples
    --------
    >>> sform_affine([2, 0, 0, -90], [0, 2, 0, -126], [0, 0, 2, -72])
    array([[   2.,    0.,    0.,  -90.],
           [   0.,    2.,    0., -126.],
           [   0.,    0.,    2.,  -72.],
           [   0.,    0.,    0.,    1.]])
    """
    out = np.eye(4)
    out[0] = srow_x
    out[1] = srow_y
    out[2] = srow_z
    return out


def shape_zoom_affine(shape, zooms, x_flip=True):
    """ Get affine implied by given shape and zooms

    We get the translations from the center of the image (implied by
    `shape`).

    Parameters
    ----------
    shape : (N,) array-like
       shape of image data. ``N`` is the number of dimensions
    zooms : (N,) array-like
       zooms (voxel sizes) of the image
    x_flip : {True, False}
       whether to flip the X row of the affine.  Corresponds to
       radiological storage on disk.

    Returns
    -------
    aff : (4,4) array
       affine giving correspondance of voxel coordinates to mm
       coordinates, taking the center of the image as origin

    Examples
    --------
    >>> shape = (3, 5, 7)
    >>> zooms = (3, 2, 1)
    >>> shape_zoom_affine((3, 5, 7), (3, 2, 1))
    array([[-3.,  0.,  0.,  3.],
           [ 0.,  2.,  0., -4.],
           [ 0.,  0.,  1., -3.],
           [ 0.,  0.,  0.,  1.]])
    """
    shape = np.asarray(shape)
    zooms = np.array(zooms)  # copy because of flip below
    ndims = len(shape)
    if ndims != len(zooms):
        raise ValueError('Should be same length of zooms and shape')
    if ndims >= 3:
        shape = shape[:3]
        zooms = zooms[:3]
    else:
        full_shape = np.ones((3,))
        full_zooms = np.ones((3,))
        full_shape[:ndims] = shape[:]
        full_zooms[:ndims] = zooms[:]
        shape = full_shape
        zooms = full_zooms
    if x_flip:
        zooms[0] *= -1
    # Get translations from center of image
    origin = (shape - 1) / 2.0
    aff = np.eye(4)
    aff[:3, :3] = np.diag(zooms)
    aff[:3, -1] = -origin * zooms
    return aff


def base_affine(dim, pixdim):
    """ Shape and zoom affine from ``dim`` and ``pixdim`` of an image header

    ``dim[0]`` is the number of dimensions, the sizes and voxel sizes follow.
    """
    ndim = int(dim[0])
    return shape_zoom_affine(np.asarray(dim)[1:ndim + 1],
                             np.asarray(pixdim)[1:ndim + 1])
