# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
""" Streaming writer for TrackVis files

The header is written as soon as the writer is created, with a streamline
count of 0.  Streamlines are then appended one record at a time, and the
count is patched in the header when the writer is closed::

    with TrkWriter('out.trk', reader.header) as writer:
        for item in reader:
            writer.write_item(item)

Files are always written little endian.
"""
import os
import struct

import numpy as np

from . import trkglobals
from .affines import apply_affine, inv_affine
from .array_sequence import is_array_sequence
from .header import DataError, TrkHeader
from .openers import Opener
from .tractogram import Tractogram, TractogramItem

_f4 = np.dtype('<f4')


class TrkWriter:
    """ Write streamlines to a TrackVis file

    Parameters
    ----------
    fileobj : str, os.PathLike or file-like
        If a path, the file is created, and closed by :meth:`close`.
        Otherwise an open, seekable, binary file.
    header : None or :class:`TrkHeader`, optional
        Header to write, usually the header of the file the streamlines
        come from.  It is copied, so later changes do not affect the writer.
        Default is a default :class:`TrkHeader`.

    Notes
    -----
    Incoming points are expected in RAS+ millimeters and are transformed with
    the inverse of the header affine.  See :meth:`reset_affine`,
    :meth:`from_voxel_space` and :meth:`apply_affine` to write points given
    in another space.
    """

    def __init__(self, fileobj, header=None):
        self._closed = True
        self.header = TrkHeader() if header is None else header.copy()
        self.header.nb_streamlines = 0
        # Raises AffineError for a singular affine, before creating any file
        self.affine = inv_affine(self.header.get_affine())
        self._nb_scalars = self.header.nb_scalars_per_point
        self._nb_properties = self.header.nb_properties_per_streamline
        self._opener = Opener(fileobj, 'wb')
        self._beginning = self._opener.tell()
        self._closed = False
        self.nb_streamlines = 0
        self.header.write_to(self._opener)

    def reset_affine(self):
        """ Write points as given, they are already in TrackVis voxmm space """
        self.affine = np.eye(4, dtype=np.float32)

    def from_voxel_space(self, spacing=None):
        """ Points are given in voxel space, scale them by `spacing`

        This is the inverse of :meth:`trkio.reader.TrkReader.to_voxel_space`.

        Parameters
        ----------
        spacing : None or sequence of 3 floats, optional
            Voxel sizes.  Default is the voxel sizes of the header.
        """
        if spacing is None:
            spacing = self.header.get_voxel_sizes()
        spacing = np.asarray(spacing, dtype=np.float64)
        if spacing.shape != (3,):
            raise ValueError(f'Invalid voxel spacing {spacing}')
        self.affine = np.diag(np.r_[spacing, 1.0]).astype(np.float32)

    def apply_affine(self, affine):
        """ Apply `affine` to the incoming points, before the current transform

        For example, with the default transform, ``apply_affine(vox2ras)``
        lets you write points given in the voxel space of an image whose
        voxel to RAS+ mm affine is ``vox2ras``.
        """
        affine = np.asarray(affine)
        if affine.shape != (4, 4):
            raise ValueError(f'Affine should be (4, 4), not {affine.shape}')
        self.affine = np.dot(self.affine, affine).astype(np.float32)

    def _check_open(self):
        if self._closed:
            raise ValueError('I/O operation on closed TrkWriter')

    def _transform(self, points):
        points = np.asarray(points, dtype=np.float32)
        if points.ndim != 2 or points.shape[1] != 3:
            raise DataError(f'Streamline points should be (N, 3), not {points.shape}')
        return apply_affine(self.affine.astype(np.float32), points)

    def _write_record(self, points, scalars=None, properties=None):
        self._check_open()
        points = self._transform(points)
        nb_points = len(points)
        blocks = [struct.pack('<i', nb_points)]
        if self._nb_scalars:
            if scalars is None:
                raise DataError(f'The header declares {self._nb_scalars} '
                                'scalars per point, none were given')
            scalars = np.asarray(scalars, dtype=np.float32)
            if scalars.shape != (nb_points, self._nb_scalars):
                raise DataError(f'Scalars should be {(nb_points, self._nb_scalars)}, '
                                f'not {scalars.shape}')
            points = np.concatenate([points, scalars], axis=1)
        blocks.append(points.astype(_f4).tobytes())
        if self._nb_properties:
            if properties is None:
                raise DataError(f'The header declares {self._nb_properties} '
                                'properties per streamline, none were given')
            properties = np.asarray(properties, dtype=np.float32).reshape(-1)
            if len(properties) != self._nb_properties:
                raise DataError(f'Expected {self._nb_properties} properties, '
                                f'got {len(properties)}')
            blocks.append(properties.astype(_f4).tobytes())
        self._opener.write(b''.join(blocks))
        self.nb_streamlines += 1

    def write_item(self, item):
        """ Write one :class:`TractogramItem` """
        scalars = item.scalars if self._nb_scalars else None
        properties = item.properties if self._nb_properties else None
        self._write_record(item.streamline, scalars, properties)

    def write_tractogram(self, tractogram):
        """ Write all the streamlines of a :class:`Tractogram` """
        if len(tractogram) == 0:
            return
        if tractogram.nb_scalars_per_point != self._nb_scalars:
            raise DataError(f'Tractogram has {tractogram.nb_scalars_per_point} '
                            'scalars per point, the header declares '
                            f'{self._nb_scalars}')
        if tractogram.nb_properties_per_streamline != self._nb_properties:
            raise DataError(f'Tractogram has {tractogram.nb_properties_per_streamline} '
                            'properties per streamline, the header declares '
                            f'{self._nb_properties}')
        if not self._nb_scalars and not self._nb_properties:
            for points in tractogram.streamlines:
                self._write_record(points)
            return
        for item in tractogram:
            self.write_item(item)

    def write_points(self, points):
        """ Write one streamline given as an (N, 3) array of points

        Only possible when the header declares no scalar and no property.
        """
        self._write_record(points)

    def write_from_iter(self, points, length):
        """ Write one streamline from an iterable of `length` points

        The points are written as they come, without building an array.
        Only possible when the header declares no scalar and no property.

        Raises
        ------
        DataError
            If the iterable does not give exactly `length` points.  With too
            few points the record is left short and the file is unusable.
            With too many, the extra points are not written, and the complete
            record is counted.
        """
        self._check_open()
        if self._nb_scalars or self._nb_properties:
            raise DataError('Cannot write points alone, the header declares '
                            'scalars or properties')
        self._opener.write(struct.pack('<i', length))
        nb_written = 0
        for point in points:
            if nb_written == length:
                self.nb_streamlines += 1
                raise DataError(f'Expected {length} points, got more')
            self._opener.write(self._transform([point]).astype(_f4).tobytes())
            nb_written += 1
        if nb_written != length:
            raise DataError(f'Expected {length} points, got {nb_written}')
        self.nb_streamlines += 1

    def write(self, obj):
        """ Write a :class:`Tractogram`, a :class:`TractogramItem` or points
        """
        if isinstance(obj, Tractogram):
            self.write_tractogram(obj)
        elif isinstance(obj, TractogramItem):
            self.write_item(obj)
        elif is_array_sequence(obj):
            self.write_tractogram(Tractogram(obj))
        else:
            self.write_points(obj)

    @property
    def closed(self):
        return self._closed

    def close(self):
        """ Patch the streamline count in the header and close the file

        Calling it again does nothing.  Errors while patching propagate.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._opener.flush()
            TrkHeader.write_nb_streamlines(self._opener, self.nb_streamlines,
                                           self._beginning)
            self._opener.seek(0, os.SEEK_END)
            self._opener.flush()
            self.header.nb_streamlines = self.nb_streamlines
        finally:
            self._opener.close_if_mine()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        if getattr(self, '_closed', True):
            return
        trkglobals.logger.error(
            f'TrkWriter for {self._opener.description} was not closed; '
            'closing it now to record the streamline count')
        self.close()
