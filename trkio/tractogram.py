import copy
import numbers

import numpy as np

from .affines import apply_affine
from .array_sequence import ArraySequence, is_array_sequence
from .header import DataError


def _as_array_sequence(value):
    if value is None:
        return ArraySequence(dtype=np.float32)
    if is_array_sequence(value):
        return value
    return ArraySequence(value, dtype=np.float32)


class TractogramItem:
    """Class containing information about one streamline.

    :class:`TractogramItem` objects have three public attributes: `streamline`,
    `scalars`, and `properties`.

    Parameters
    ----------
    streamline : ndarray shape (N, 3)
        Points of this streamline represented as an ndarray of shape (N, 3)
        where N is the number of points.
    scalars : None or ndarray shape (N, S)
        Scalar values of every point; column ``k`` is the scalar channel
        ``k``.  None means no scalar channel.
    properties : None or ndarray shape (P,)
        Property values of this streamline.  None means no property channel.
    """

    def __init__(self, streamline, scalars=None, properties=None):
        self.streamline = np.asarray(streamline)
        if scalars is None:
            scalars = np.empty((len(self.streamline), 0), dtype=np.float32)
        if properties is None:
            properties = np.empty((0,), dtype=np.float32)
        self.scalars = np.asarray(scalars)
        self.properties = np.asarray(properties)

    @property
    def nb_scalars_per_point(self):
        return self.scalars.shape[1] if self.scalars.ndim == 2 else 0

    @property
    def nb_properties_per_streamline(self):
        return len(self.properties)

    def __iter__(self):
        return iter(self.streamline)

    def __len__(self):
        return len(self.streamline)


class Tractogram:
    """Container for streamlines and their scalars and properties.

    Attributes
    ----------
    streamlines : :class:`ArraySequence` object
        Sequence of $T$ streamlines. Each streamline is an ndarray of
        shape ($N_t$, 3) where $N_t$ is the number of points of
        streamline $t$.
    scalars : :class:`ArraySequence` object
        Either empty, when points carry no scalar, or a sequence of $T$
        ndarrays of shape ($N_t$, $S$) holding the $S$ scalar values of every
        point.
    properties : :class:`ArraySequence` object
        Either empty, when streamlines carry no property, or a sequence of
        $T$ ndarrays of shape ($P$,) holding the $P$ property values of every
        streamline.

    Streamlines can be in any space: :class:`trkio.reader.TrkReader` gives
    them in RAS+ millimeters unless asked otherwise.
    """

    def __init__(self, streamlines=None, scalars=None, properties=None):
        """
        Parameters
        ----------
        streamlines : iterable of ndarrays or :class:`ArraySequence`, optional
            Sequence of $T$ streamlines.  An :class:`ArraySequence` is used as
            is; other iterables are copied into a float32 one.
        scalars : iterable of ndarrays or :class:`ArraySequence`, optional
            Scalar values of the points, one ($N_t$, $S$) array per
            streamline.
        properties : iterable of ndarrays or :class:`ArraySequence`, optional
            Property values of the streamlines, one ($P$,) array per
            streamline.

        Raises
        ------
        DataError
            If scalars or properties, when given, do not match the
            streamlines.
        """
        self._streamlines = _as_array_sequence(streamlines)
        self._scalars = _as_array_sequence(scalars)
        self._properties = _as_array_sequence(properties)
        self._check_consistency()

    def _check_consistency(self):
        nb_streamlines = len(self._streamlines)
        if len(self._scalars) > 0:
            if len(self._scalars) != nb_streamlines:
                raise DataError(f'Got scalars for {len(self._scalars)} '
                                f'streamlines, expected {nb_streamlines}.')
            if not np.array_equal(self._scalars.lengths,
                                  self._streamlines.lengths):
                raise DataError('Number of scalar rows does not match the '
                                'number of points of every streamline.')
        if len(self._properties) > 0 and len(self._properties) != nb_streamlines:
            raise DataError(f'Got properties for {len(self._properties)} '
                            f'streamlines, expected {nb_streamlines}.')

    @property
    def streamlines(self):
        return self._streamlines

    @property
    def scalars(self):
        return self._scalars

    @property
    def properties(self):
        return self._properties

    @property
    def nb_scalars_per_point(self):
        if len(self._scalars) == 0:
            return 0
        common_shape = self._scalars.common_shape
        return common_shape[0] if common_shape else 1

    @property
    def nb_properties_per_streamline(self):
        if len(self._properties) == 0:
            return 0
        return self._properties.length_of_array(0)

    def __iter__(self):
        for i in range(len(self._streamlines)):
            yield self[i]

    def __getitem__(self, idx):
        pts = self._streamlines[idx]
        scalars = self._scalars[idx] if len(self._scalars) else None
        properties = self._properties[idx] if len(self._properties) else None

        if isinstance(idx, (numbers.Integral, np.integer)):
            return TractogramItem(pts, scalars, properties)

        return Tractogram(pts, scalars, properties)

    def __len__(self):
        return len(self._streamlines)

    def copy(self):
        """Returns a copy of this :class:`Tractogram` object."""
        return copy.deepcopy(self)

    def apply_affine(self, affine):
        """Applies an affine transformation on the points of each streamline.

        This is performed *in-place*.

        Parameters
        ----------
        affine : ndarray of shape (4, 4)
            Transformation that will be applied to every streamline.

        Returns
        -------
        tractogram : :class:`Tractogram` object
            This tractogram, with updated streamlines.
        """
        if len(self._streamlines) == 0:
            return self

        if np.all(affine == np.eye(4)):
            return self  # No transformation.

        data = self._streamlines.data
        data[:] = apply_affine(affine, data)
        return self

    def extend(self, other):
        """Appends the streamlines, scalars and properties of `other`

        Raises
        ------
        DataError
            If the two tractograms do not have the same scalar and property
            channels.
        """
        if len(self) and len(other) and (
                other.nb_scalars_per_point != self.nb_scalars_per_point or
                other.nb_properties_per_streamline != self.nb_properties_per_streamline):
            raise DataError('Cannot extend a tractogram with one having '
                            'different scalar or property channels.')
        self._streamlines.extend(other.streamlines)
        self._scalars.extend(other.scalars)
        self._properties.extend(other.properties)
        self._check_consistency()
