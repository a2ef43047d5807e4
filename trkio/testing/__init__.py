# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Utilities for testing

The TrackVis files used in the tests are built in memory by
:func:`write_raw_trk`, which encodes records with numpy only, so the reader
can be tested without the writer and the other way around.
"""
from io import BytesIO
from itertools import zip_longest

import numpy as np
from numpy.testing import assert_array_equal, assert_array_almost_equal

from ..header import TrkHeader


def assert_arrays_equal(arrays1, arrays2):
    """Check two iterables yield the same sequence of arrays."""
    for arr1, arr2 in zip_longest(arrays1, arrays2, fillvalue=None):
        assert arr1 is not None and arr2 is not None
        assert_array_equal(arr1, arr2)


def assert_arrays_almost_equal(arrays1, arrays2, decimal=5):
    for arr1, arr2 in zip_longest(arrays1, arrays2, fillvalue=None):
        assert arr1 is not None and arr2 is not None
        assert_array_almost_equal(arr1, arr2, decimal=decimal)


def assert_tractogram_equal(t1, t2, decimal=None):
    """Check streamlines, scalars and properties of two tractograms match

    Exact comparison if `decimal` is None.
    """
    assert len(t1) == len(t2)
    assert t1.nb_scalars_per_point == t2.nb_scalars_per_point
    assert t1.nb_properties_per_streamline == t2.nb_properties_per_streamline
    for name in ('streamlines', 'scalars', 'properties'):
        seq1, seq2 = getattr(t1, name), getattr(t2, name)
        if decimal is None:
            assert_arrays_equal(seq1, seq2)
        else:
            assert_arrays_almost_equal(seq1, seq2, decimal)


def make_header(scalar_names=(), property_names=(), **fields):
    """Default :class:`TrkHeader` with some fields replaced

    Parameters
    ----------
    scalar_names, property_names : sequence of bytes
        Raw name table slots, written as given, without changing the
        channel counts.
    \\*\\*fields
        Header fields to set, e.g. ``n_scalars=4, voxel_order=b'LAS'``.
    """
    hdr = TrkHeader()
    for key, value in fields.items():
        hdr[key] = value
    for i, name in enumerate(scalar_names):
        hdr['scalar_name'][i] = name
    for i, name in enumerate(property_names):
        hdr['property_name'][i] = name
    return hdr


def write_raw_trk(fileobj, header, streamlines, scalars=None, properties=None,
                  endianness='<'):
    """Write `header` and records to `fileobj` with byte order `endianness`

    Points are written as given, no transform is applied.  The header is
    written as is too, so its ``n_count`` is whatever the caller set.
    """
    i4 = np.dtype(endianness + 'i4')
    f4 = np.dtype(endianness + 'f4')
    fileobj.write(header.as_byteswapped(endianness).binaryblock)
    for i, points in enumerate(streamlines):
        points = np.asarray(points, dtype=np.float32).reshape((-1, 3))
        fileobj.write(np.array(len(points), dtype=i4).tobytes())
        block = points
        if scalars is not None:
            block = np.concatenate([points, np.asarray(scalars[i], np.float32)],
                                   axis=1)
        fileobj.write(block.astype(f4).tobytes())
        if properties is not None:
            fileobj.write(np.asarray(properties[i], dtype=f4).tobytes())


def trk_bytesio(header, streamlines, scalars=None, properties=None,
                endianness='<'):
    """:func:`write_raw_trk` to a :class:`BytesIO`, rewound"""
    bio = BytesIO()
    write_raw_trk(bio, header, streamlines, scalars, properties, endianness)
    bio.seek(0)
    return bio


# Streamlines in RAS+ mm.  With the default header (identity vox_to_ras,
# voxel size 1, 'RAS') they are stored shifted by half a voxel.
SIMPLE_STREAMLINES = [np.arange(1 * 3, dtype='f4').reshape((1, 3)),
                      np.arange(2 * 3, dtype='f4').reshape((2, 3)),
                      np.arange(5 * 3, dtype='f4').reshape((5, 3))]
STORED_SIMPLE_STREAMLINES = [s + 0.5 for s in SIMPLE_STREAMLINES]

FA = [np.array([[0.2]], dtype='f4'),
      np.array([[0.3],
                [0.4]], dtype='f4'),
      np.array([[0.5],
                [0.6],
                [0.6],
                [0.7],
                [0.8]], dtype='f4')]

COLORS = [np.array([(1, 0, 0)] * 1, dtype='f4'),
          np.array([(0, 1, 0)] * 2, dtype='f4'),
          np.array([(0, 0, 1)] * 5, dtype='f4')]

MEAN_COLORS = [np.array([1, 0, 0], dtype='f4'),
               np.array([0, 1, 0], dtype='f4'),
               np.array([0, 0, 1], dtype='f4')]

MEAN_CURVATURE = [np.array([1.11], dtype='f4'),
                  np.array([2.11], dtype='f4'),
                  np.array([3.11], dtype='f4')]

MEAN_TORSION = [np.array([1.22], dtype='f4'),
                np.array([2.22], dtype='f4'),
                np.array([3.22], dtype='f4')]

# Scalars are colors then fa, properties mean colors, curvature then torsion
COMPLEX_SCALARS = [np.concatenate([c, fa], axis=1)
                   for c, fa in zip(COLORS, FA)]
COMPLEX_PROPERTIES = [np.concatenate([c, curv, tors])
                      for c, curv, tors in zip(MEAN_COLORS, MEAN_CURVATURE,
                                               MEAN_TORSION)]
COMPLEX_SCALAR_NAMES = ['colors', 'colors', 'colors', 'fa']
COMPLEX_PROPERTY_NAMES = ['mean_colors', 'mean_colors', 'mean_colors',
                          'mean_curvature', 'mean_torsion']


def simple_header(**fields):
    fields.setdefault('n_count', len(SIMPLE_STREAMLINES))
    return make_header(**fields)


def complex_header(**fields):
    fields.setdefault('n_count', len(SIMPLE_STREAMLINES))
    return make_header(n_scalars=4,
                       scalar_names=[b'colors\x003', b'fa'],
                       n_properties=5,
                       property_names=[b'mean_colors\x003', b'mean_curvature',
                                       b'mean_torsion'],
                       **fields)


def empty_trk(endianness='<'):
    return trk_bytesio(make_header(), [], endianness=endianness)


def simple_trk(endianness='<'):
    return trk_bytesio(simple_header(), STORED_SIMPLE_STREAMLINES,
                       endianness=endianness)


def complex_trk(endianness='<'):
    return trk_bytesio(complex_header(), STORED_SIMPLE_STREAMLINES,
                       COMPLEX_SCALARS, COMPLEX_PROPERTIES,
                       endianness=endianness)
