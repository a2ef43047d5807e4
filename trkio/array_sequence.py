""" Compact storage for a sequence of arrays with variable first dimension

Streamlines do not all have the same number of points, so storing them as one
(N, 3) array per streamline wastes memory and time.  :class:`ArraySequence`
keeps all the rows in a single numpy buffer, plus the offsets at which every
sub-array starts.
"""
import numbers

import numpy as np

MEGABYTE = 1024 * 1024


def is_array_sequence(obj):
    """Return True if `obj` is an array sequence."""
    try:
        return obj.is_array_sequence
    except AttributeError:
        return False


def is_ndarray_of_int_or_bool(obj):
    return isinstance(obj, np.ndarray) and (
        np.issubdtype(obj.dtype, np.integer) or np.issubdtype(obj.dtype, np.bool_)
    )


class ArraySequence:
    """Sequence of ndarrays having variable first dimension sizes.

    This is a container that can store multiple ndarrays where each ndarray
    might have a different first dimension size but a *common* size for the
    remaining dimensions.

    More generally, an instance of :class:`ArraySequence` of length $N$ is
    composed of $N$ ndarrays of shape $(d_1, d_2, ... d_D)$ where $d_1$
    can vary in length between arrays but $(d_2, ..., d_D)$ have to be the
    same for every ndarray.

    The rows of all the arrays are stored back to back in :attr:`data`, and
    ``offsets[i]:offsets[i + 1]`` is the row range of the i-th array.  So
    ``offsets`` has one more entry than there are arrays, starts at 0 and ends
    at :attr:`total_nb_rows`.

    Arrays can be added whole with :meth:`append`, or row by row with
    :meth:`push` followed by :meth:`end_push` to mark the end of the array.
    """

    def __init__(self, iterable=None, buffer_size=4, dtype=None):
        """Initialize array sequence instance

        Parameters
        ----------
        iterable : None or iterable or :class:`ArraySequence`, optional
            If None, create an empty :class:`ArraySequence` object.
            Otherwise, create a :class:`ArraySequence` object initialized
            with a copy of the array-like objects yielded by the iterable.
        buffer_size : float, optional
            Size (in Mb) of the smallest memory allocation made when the
            sequence grows.
        dtype : None or numpy dtype, optional
            Data type of the rows.  If None, use the type of the first
            array added.
        """
        self._buffer_size = buffer_size
        self._dtype = None if dtype is None else np.dtype(dtype)
        self._data = np.empty((0,), dtype=np.float64 if dtype is None else self._dtype)
        self._initialized = False
        self._nb_rows = 0
        self._offsets = [0]

        if iterable is None:
            return

        self.extend(iterable)
        self.shrink_data()

    @classmethod
    def from_lengths(cls, lengths, data):
        """Create an array sequence from sub-array `lengths` and flat `data`

        Parameters
        ----------
        lengths : sequence of int
            Number of rows of each sub-array.
        data : ndarray
            Rows of all the sub-arrays, back to back.  It is used as is, not
            copied.

        Raises
        ------
        ValueError
            If the lengths do not add up to the number of rows in `data`.
        """
        data = np.asarray(data)
        if data.ndim == 0:
            raise ValueError('`data` must have at least one dimension')
        lengths = np.asarray(lengths, dtype=np.intp).reshape(-1)
        if np.any(lengths < 0):
            raise ValueError('`lengths` cannot be negative')
        offsets = np.concatenate([[0], np.cumsum(lengths)])
        if offsets[-1] != len(data):
            raise ValueError(f'`lengths` declares {offsets[-1]} rows but `data` '
                             f'contains {len(data)} rows.')
        seq = cls(dtype=data.dtype)
        seq._data = data
        seq._initialized = True
        seq._nb_rows = len(data)
        seq._offsets = [int(o) for o in offsets]
        return seq

    @property
    def is_array_sequence(self):
        return True

    @property
    def common_shape(self):
        """Matching shape of the elements in this array sequence."""
        return self._data.shape[1:]

    @property
    def dtype(self):
        return self._data.dtype

    @property
    def total_nb_rows(self):
        """Total number of committed rows in this array sequence."""
        return self._offsets[-1]

    @property
    def offsets(self):
        """Start row of every array, followed by :attr:`total_nb_rows`."""
        return np.array(self._offsets, dtype=np.intp)

    @property
    def lengths(self):
        """Number of rows of every array."""
        return np.diff(self.offsets)

    @property
    def data(self):
        """Rows of all arrays, including rows pushed but not yet committed.

        This is a view: modifying it modifies the sequence.
        """
        return self._data[:self._nb_rows]

    def _reserve(self, n_rows, common_shape, dtype):
        """Make room for `n_rows` more rows of shape `common_shape`"""
        if not self._initialized:
            if self._dtype is None:
                self._dtype = np.dtype(dtype)
            self._data = np.empty((0,) + common_shape, dtype=self._dtype)
            self._initialized = True
        elif common_shape != self.common_shape:
            raise ValueError('All dimensions, except the first one, must match exactly')
        req_rows = self._nb_rows + n_rows
        capacity = self._data.shape[0]
        if req_rows <= capacity:
            return
        bytes_per_row = max(1, int(np.prod(common_shape)) * self._data.dtype.itemsize)
        rows_per_buf = max(1, int(self._buffer_size * MEGABYTE) // bytes_per_row)
        new_rows = max(req_rows, 2 * capacity, rows_per_buf)
        new_data = np.empty((new_rows,) + common_shape, dtype=self._data.dtype)
        new_data[:self._nb_rows] = self._data[:self._nb_rows]
        self._data = new_data

    def shrink_data(self):
        """Release the spare capacity of the data buffer"""
        if self._data.shape[0] > self._nb_rows:
            self._data = self._data[:self._nb_rows].copy()

    def push(self, value):
        """Add one row to the array being built

        The row stays pending, invisible to indexing and ``len``, until
        :meth:`end_push` commits it with the other pending rows as one array.

        Parameters
        ----------
        value : scalar or ndarray
            Row to add; its shape must be the common shape of the sequence.
        """
        value = np.asarray(value)
        self._reserve(1, value.shape, value.dtype)
        self._data[self._nb_rows] = value
        self._nb_rows += 1

    def nb_push_done(self):
        """Number of rows pushed since the last commit"""
        return self._nb_rows - self._offsets[-1]

    def end_push(self):
        """Commit the pending rows as a new array

        Does nothing if no row is pending, so empty arrays are never created
        this way.
        """
        if self._nb_rows > self._offsets[-1]:
            self._offsets.append(self._nb_rows)

    def append(self, element):
        """Appends `element` to this array sequence.

        Parameters
        ----------
        element : ndarray
            Element to append. The shape must match already inserted elements
            shape except for the first dimension.  An empty element is
            ignored.

        Notes
        -----
        Rows pushed with :meth:`push` and not yet committed become the
        beginning of `element`.
        """
        element = np.asarray(element)
        if element.size == 0:
            return
        if element.ndim == 0:
            element = element.reshape(1)
        n_rows = element.shape[0]
        self._reserve(n_rows, element.shape[1:], element.dtype)
        self._data[self._nb_rows:self._nb_rows + n_rows] = element
        self._nb_rows += n_rows
        self.end_push()

    def extend(self, elements):
        """Appends all `elements` to this array sequence.

        Parameters
        ----------
        elements : iterable of ndarrays or :class:`ArraySequence` object
            Each ndarray is appended as with :meth:`append`.
        """
        for e in elements:
            self.append(e)

    def copy(self):
        """Creates a copy of this :class:`ArraySequence` object.

        Rows pushed but not committed are not copied.
        """
        seq = self.__class__(buffer_size=self._buffer_size, dtype=self._dtype)
        seq._data = self._data[:self.total_nb_rows].copy()
        seq._initialized = self._initialized
        seq._nb_rows = self.total_nb_rows
        seq._offsets = list(self._offsets)
        return seq

    def _check_index(self, idx):
        n = len(self)
        i = int(idx)
        if i < -n or i >= n:
            raise IndexError(f'Index {idx} out of range for ArraySequence of length {n}')
        return i + n if i < 0 else i

    def _take(self, indices):
        """New sequence with a copy of the arrays at `indices`"""
        seq = self.__class__(buffer_size=self._buffer_size, dtype=self._dtype)
        if not self._initialized:
            return seq
        offsets = self._offsets
        lengths = [offsets[i + 1] - offsets[i] for i in indices]
        data = np.empty((sum(lengths),) + self.common_shape, dtype=self._data.dtype)
        row = 0
        for i, length in zip(indices, lengths):
            data[row:row + length] = self._data[offsets[i]:offsets[i + 1]]
            row += length
        seq._data = data
        seq._initialized = True
        seq._nb_rows = row
        seq._offsets = [0] + np.cumsum(lengths, dtype=np.intp).tolist()
        return seq

    def __getitem__(self, idx):
        """Get sequence(s) through standard or advanced numpy indexing.

        Parameters
        ----------
        idx : int or slice or list or ndarray
            If int, index of the element to retrieve; negative values count
            from the end.
            If slice, use slicing to retrieve elements.
            If list, indices of the elements to retrieve.
            If ndarray with dtype int, indices of the elements to retrieve.
            If ndarray with dtype bool, only retrieve selected elements.

        Returns
        -------
        ndarray or :class:`ArraySequence`
            If `idx` is an int, returns a view of the selected array.
            Otherwise, returns a new :class:`ArraySequence` object holding a
            copy of the selected arrays.

        Raises
        ------
        IndexError
            If an index is out of range.
        """
        if isinstance(idx, (numbers.Integral, np.integer)):
            i = self._check_index(idx)
            return self._data[self._offsets[i]:self._offsets[i + 1]]

        if isinstance(idx, slice):
            return self._take(range(len(self))[idx])

        if isinstance(idx, (list, range)) or is_ndarray_of_int_or_bool(idx):
            indices = np.arange(len(self))[np.asarray(idx)]
            return self._take(indices.tolist())

        raise TypeError('Index must be either an int, a slice, a list of int'
                        ' or a ndarray of bool! Not ' + str(type(idx)))

    def __setitem__(self, idx, element):
        """Overwrite the rows of the array at index `idx` with `element`"""
        if not isinstance(idx, (numbers.Integral, np.integer)):
            raise TypeError(f'Index must be an int, not {type(idx)}')
        i = self._check_index(idx)
        self._data[self._offsets[i]:self._offsets[i + 1]] = element

    def length_of_array(self, idx):
        """Number of rows of the array at index `idx`"""
        i = self._check_index(idx)
        return self._offsets[i + 1] - self._offsets[i]

    def filter(self, predicate):
        """New sequence of the arrays for which ``predicate(array)`` is True

        Order is preserved.
        """
        return self._take([i for i, arr in enumerate(self) if predicate(arr)])

    def __iter__(self):
        offsets = self._offsets
        for i in range(len(offsets) - 1):
            yield self._data[offsets[i]:offsets[i + 1]]

    def __reversed__(self):
        offsets = self._offsets
        for i in range(len(offsets) - 2, -1, -1):
            yield self._data[offsets[i]:offsets[i + 1]]

    def __len__(self):
        return len(self._offsets) - 1

    def __repr__(self):
        if len(self) > np.get_printoptions()['threshold']:
            # Show only the first and last edgeitems.
            edgeitems = np.get_printoptions()['edgeitems']
            data = str(list(self[:edgeitems]))[:-1]
            data += ', ..., '
            data += str(list(self[-edgeitems:]))[1:]
        else:
            data = str(list(self))

        return f'{self.__class__.__name__}({data})'
