# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
""" Streaming reader for TrackVis files

After the header, a TrackVis file is a sequence of records, one per
streamline::

    int32    N                  number of points
    float32  N * (3 + S)        x, y, z and the S scalars of every point
    float32  P                  properties of the streamline

where S and P are the numbers of scalar and property channels declared in the
header.  The byte order is the one of the header.  There is no end marker:
records follow each other until the end of the file.

Read all streamlines at once::

    with TrkReader('tracts.trk') as reader:
        tractogram = reader.read_all()

or one at a time, without holding the whole file in memory::

    with TrkReader('tracts.trk') as reader:
        for item in reader:
            print(len(item.streamline), item.properties)
"""
import numpy as np

from . import trkglobals
from .affines import apply_affine
from .array_sequence import ArraySequence
from .header import DataError, TrkHeader, TruncatedFileError
from .openers import Opener
from .tractogram import Tractogram, TractogramItem

#: Points in world RAS+ millimeters, origin at the voxel center
RASMM = 'rasmm'
#: Points as stored in the file, TrackVis voxmm space
VOXMM = 'voxmm'
#: Points in voxel coordinates, voxmm divided by the voxel sizes
VOXEL = 'voxel'


def _from_lengths(lengths, seq, row_shape):
    """ Arrays of `seq` split again with `lengths`, which may include zeros

    Empty arrays are dropped by :meth:`ArraySequence.append`, so `seq` only
    holds the rows.
    """
    seq.shrink_data()
    data = seq.data
    if len(data) == 0:
        data = np.empty((0,) + row_shape, dtype=np.float32)
    return ArraySequence.from_lengths(lengths, data)


class TrkReader:
    """ Read the streamlines of a TrackVis file, one record at a time

    The header is read and checked on construction.  The streamlines are then
    read once, in file order, either by iterating over the reader (giving
    :class:`TractogramItem` objects), with :meth:`iter_streamlines` (points
    only), or all at once with :meth:`read_all` and :meth:`read_streamlines`.

    By default points are given in world RAS+ millimeters.  Call
    :meth:`to_raw` or :meth:`to_voxel_space` before reading the first
    streamline to get them in another space.

    Parameters
    ----------
    fileobj : str, os.PathLike or file-like
        If a path, the file is opened, and closed by :meth:`close`.
        Otherwise an open binary file positioned at the start of the header.
    check : bool, optional
        Whether to check the header.  See :class:`trkio.header.TrkHeader`.

    Attributes
    ----------
    header : :class:`TrkHeader`
    affine : (4, 4) float32 array
        Affine mapping the stored voxmm points to RAS+ millimeters.
    nb_streamlines_read : int
        Number of records read so far.
    """

    def __init__(self, fileobj, check=True):
        self._opener = Opener(fileobj)
        try:
            self.header = TrkHeader.from_fileobj(self._opener, check=check)
            self.affine = self.header.get_affine()
        except Exception:
            self._opener.close_if_mine()
            raise
        self.endianness = self.header.endianness
        self._i4 = np.dtype(self.endianness + 'i4')
        self._f4 = np.dtype(self.endianness + 'f4')
        self._nb_scalars = self.header.nb_scalars_per_point
        self._nb_properties = self.header.nb_properties_per_streamline
        self._mode = RASMM
        self._transform = self.affine
        self._state = 'opened'
        # Scratch space reused by every record, grown as needed
        self._buffer = bytearray(4096)
        self.nb_streamlines_read = 0

    @property
    def mode(self):
        """ Space of the points given: 'rasmm', 'voxmm' or 'voxel' """
        return self._mode

    def _set_mode(self, mode, transform):
        if self._state != 'opened':
            raise ValueError('The reading mode must be chosen before reading '
                             'the first streamline')
        if self._mode != RASMM:
            raise ValueError(f'Reading mode already set to {self._mode!r}')
        self._mode = mode
        self._transform = transform

    def to_raw(self):
        """ Give points as stored, in TrackVis voxmm space

        Returns the reader, so calls can be chained.
        """
        self._set_mode(VOXMM, None)
        return self

    def to_voxel_space(self, spacing=None):
        """ Give points in voxel space, stored points divided by `spacing`

        Only the spacing is applied: no rotation, no translation.

        Parameters
        ----------
        spacing : None or sequence of 3 floats, optional
            Voxel sizes.  Default is the voxel sizes of the header.

        Returns the reader, so calls can be chained.
        """
        if spacing is None:
            spacing = self.header.get_voxel_sizes()
        spacing = np.asarray(spacing, dtype=np.float64)
        if spacing.shape != (3,) or np.any(spacing == 0):
            raise ValueError(f'Invalid voxel spacing {spacing}')
        transform = np.diag(np.r_[1.0 / spacing, 1.0]).astype(np.float32)
        self._set_mode(VOXEL, transform)
        return self

    def _read_count(self):
        raw = self._opener.read(self._i4.itemsize)
        if len(raw) < self._i4.itemsize:
            if raw:
                trkglobals.logger.warning(
                    f'Ignoring {len(raw)} trailing bytes at the end of '
                    f'{self._opener.description}')
            return None
        return int(np.frombuffer(raw, dtype=self._i4)[0])

    def _read_floats(self, nb_floats):
        """ `nb_floats` values read in the scratch buffer, valid until next read
        """
        nb_bytes = nb_floats * self._f4.itemsize
        if len(self._buffer) < nb_bytes:
            self._buffer = bytearray(nb_bytes)
        view = memoryview(self._buffer)[:nb_bytes]
        nb_read = 0
        while nb_read < nb_bytes:
            n = self._opener.readinto(view[nb_read:])
            if not n:
                break
            nb_read += n
        view.release()
        if nb_read < nb_bytes:
            raise TruncatedFileError(
                f'{self._opener.description} ends in the middle of streamline '
                f'{self.nb_streamlines_read}: expected {nb_bytes} bytes, '
                f'got {nb_read}')
        return np.frombuffer(self._buffer, dtype=self._f4, count=nb_floats)

    def _to_output_space(self, points):
        points = points.astype(np.float32)
        if self._transform is None:
            return points
        return apply_affine(self._transform, points)

    def _read_record(self, with_channels):
        nb_points = self._read_count()
        if nb_points is None:
            return None
        if nb_points < 0:
            raise DataError(f'Streamline {self.nb_streamlines_read} of '
                            f'{self._opener.description} has {nb_points} points')
        nb_floats_per_point = 3 + self._nb_scalars
        block = self._read_floats(nb_points * nb_floats_per_point)
        block = block.reshape((nb_points, nb_floats_per_point))
        points = self._to_output_space(block[:, :3])
        scalars = None
        if with_channels:
            scalars = block[:, 3:].astype(np.float32)
        # properties are always read, to move on to the next record
        properties = self._read_floats(self._nb_properties)
        if with_channels:
            properties = properties.astype(np.float32)
        return points, scalars, properties

    def _next_record(self, with_channels=True):
        if self._state == 'exhausted':
            return None
        self._state = 'streaming'
        record = self._read_record(with_channels)
        if record is None:
            self._state = 'exhausted'
            self._check_nb_streamlines()
            return None
        self.nb_streamlines_read += 1
        return record

    def _check_nb_streamlines(self):
        nb_declared = self.header.nb_streamlines
        if nb_declared and nb_declared != self.nb_streamlines_read:
            trkglobals.logger.warning(
                f'Header of {self._opener.description} declares {nb_declared} '
                f'streamlines, but {self.nb_streamlines_read} were read')

    def __iter__(self):
        return self

    def __next__(self):
        record = self._next_record()
        if record is None:
            raise StopIteration
        return TractogramItem(*record)

    def iter_streamlines(self):
        """ Yield the points of the remaining streamlines

        Scalars and properties are skipped.
        """
        while True:
            record = self._next_record(with_channels=False)
            if record is None:
                return
            yield record[0]

    def read_all(self):
        """ Read all remaining streamlines, with their scalars and properties

        Streamlines without points are kept, as empty arrays.

        Returns
        -------
        tractogram : :class:`Tractogram`
        """
        lengths = []
        streamlines = ArraySequence(dtype=np.float32)
        scalars = ArraySequence(dtype=np.float32)
        properties = ArraySequence(dtype=np.float32)
        while True:
            record = self._next_record()
            if record is None:
                break
            points, point_scalars, streamline_properties = record
            lengths.append(len(points))
            streamlines.append(points)
            if self._nb_scalars:
                scalars.append(point_scalars)
            if self._nb_properties:
                properties.append(streamline_properties)
        properties.shrink_data()
        streamlines = _from_lengths(lengths, streamlines, (3,))
        if self._nb_scalars:
            scalars = _from_lengths(lengths, scalars, (self._nb_scalars,))
        return Tractogram(streamlines, scalars, properties)

    def read_streamlines(self):
        """ Read the points of all remaining streamlines

        Returns
        -------
        streamlines : :class:`ArraySequence`
        """
        lengths = []
        streamlines = ArraySequence(dtype=np.float32)
        for points in self.iter_streamlines():
            lengths.append(len(points))
            streamlines.append(points)
        return _from_lengths(lengths, streamlines, (3,))

    def close(self):
        """ Close the file, if the reader opened it """
        self._opener.close_if_mine()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
