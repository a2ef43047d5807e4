import unittest

import numpy as np
import pytest
from numpy.testing import assert_array_equal

from ..array_sequence import ArraySequence, is_array_sequence
from ..testing import assert_arrays_equal


def check_arr_seq(seq, arrays):
    lengths = list(map(len, arrays))
    assert is_array_sequence(seq)
    assert len(seq) == len(arrays)
    assert seq.total_nb_rows == sum(lengths)
    assert_array_equal(seq.lengths, lengths)
    assert_array_equal(seq.offsets, np.r_[0, np.cumsum(lengths)])
    assert len(seq.data) == sum(lengths)
    if len(arrays) > 0:
        assert seq.common_shape == arrays[0].shape[1:]
    assert_arrays_equal(seq, arrays)


class TestArraySequence(unittest.TestCase):

    def setUp(self):
        rng = np.random.RandomState(42)
        self.data = [rng.rand(rng.randint(10, 50), 3) for _ in range(10)]
        self.lengths = list(map(len, self.data))
        self.seq = ArraySequence(self.data)

    def test_creating_empty_arraysequence(self):
        seq = ArraySequence()
        check_arr_seq(seq, [])
        assert seq.common_shape == ()
        assert_array_equal(seq.offsets, [0])

        seq = ArraySequence([])
        check_arr_seq(seq, [])

    def test_creating_arraysequence_from_list(self):
        rng = np.random.RandomState(42)
        for ndim in range(1, 5):
            common_shape = tuple(rng.randint(1, 10) for _ in range(ndim - 1))
            data = [rng.rand(*(rng.randint(10, 50),) + common_shape)
                    for _ in range(10)]
            seq = ArraySequence(data)
            check_arr_seq(seq, data)
            assert seq.common_shape == common_shape

    def test_creating_arraysequence_with_small_buffer(self):
        # A tiny buffer forces many reallocations while growing
        seq = ArraySequence(self.data, buffer_size=1e-4)
        check_arr_seq(seq, self.data)

    def test_creating_arraysequence_from_generator(self):
        gen = (e for e in self.data)
        seq = ArraySequence(gen)
        check_arr_seq(seq, self.data)

        # Already consumed generator
        seq = ArraySequence(gen)
        check_arr_seq(seq, [])

    def test_creating_arraysequence_from_arraysequence(self):
        seq = ArraySequence(self.seq)
        check_arr_seq(seq, self.data)
        # It is a copy
        seq[0][:] = 0
        assert_array_equal(self.seq[0], self.data[0])

    def test_dtype(self):
        seq = ArraySequence(self.data, dtype=np.float32)
        assert seq.dtype == np.float32
        assert ArraySequence(dtype='f4').dtype == np.float32
        assert ArraySequence(self.data).dtype == np.float64

    def test_from_lengths(self):
        data = np.concatenate(self.data)
        seq = ArraySequence.from_lengths(self.lengths, data)
        check_arr_seq(seq, self.data)
        # data is shared
        assert np.shares_memory(seq.data, data)

        empty = ArraySequence.from_lengths([], np.empty((0, 3)))
        check_arr_seq(empty, [])

        with pytest.raises(ValueError):
            ArraySequence.from_lengths(self.lengths[:-1], data)
        with pytest.raises(ValueError):
            ArraySequence.from_lengths([2, -1], np.zeros((1, 3)))

    def test_push_then_end_push_matches_from_lengths(self):
        seq = ArraySequence()
        for arr in self.data:
            for row in arr:
                seq.push(row)
            assert seq.nb_push_done() == len(arr)
            seq.end_push()
            assert seq.nb_push_done() == 0
        ref = ArraySequence.from_lengths(self.lengths, np.concatenate(self.data))
        assert_array_equal(seq.offsets, ref.offsets)
        assert_array_equal(seq.data, ref.data)
        assert_arrays_equal(seq, ref)

    def test_end_push_without_push(self):
        seq = ArraySequence()
        seq.end_push()
        seq.end_push()
        assert len(seq) == 0
        seq.push([1, 2, 3])
        seq.end_push()
        seq.end_push()
        assert len(seq) == 1
        assert_array_equal(seq[0], [[1, 2, 3]])

    def test_pending_rows_are_invisible(self):
        seq = ArraySequence()
        seq.append(np.ones((2, 3)))
        seq.push([5, 5, 5])
        assert len(seq) == 1
        assert seq.total_nb_rows == 2
        assert len(seq.data) == 3
        seq.end_push()
        assert len(seq) == 2
        assert_array_equal(seq[1], [[5, 5, 5]])

    def test_arraysequence_append(self):
        element = np.ones((5, 3))
        seq = self.seq.copy()
        seq.append(element)
        check_arr_seq(seq, self.data + [element])

        # Append to an empty sequence
        seq = ArraySequence()
        seq.append(element)
        check_arr_seq(seq, [element])

        # Empty elements are ignored
        seq.append(np.zeros((0, 3)))
        check_arr_seq(seq, [element])

        # Common shape mismatch
        with pytest.raises(ValueError):
            seq.append(np.ones((5, 2)))

    def test_arraysequence_extend(self):
        new_data = [np.ones((i + 1, 3)) for i in range(3)]
        seq = self.seq.copy()
        seq.extend(new_data)
        check_arr_seq(seq, self.data + new_data)

        seq = self.seq.copy()
        seq.extend(ArraySequence(new_data))
        check_arr_seq(seq, self.data + new_data)

        seq = self.seq.copy()
        seq.extend([])
        check_arr_seq(seq, self.data)

    def test_arraysequence_getitem(self):
        # Get one item
        for i, e in enumerate(self.seq):
            assert_array_equal(self.seq[i], e)
        assert_array_equal(self.seq[-1], self.data[-1])
        assert_array_equal(self.seq[np.int64(2)], self.data[2])

        # Integer indexing gives a view
        view = self.seq.copy()
        view[0][0] = -1
        assert view[0][0, 0] == -1

        for idx in (len(self.seq), -len(self.seq) - 1):
            with pytest.raises(IndexError):
                self.seq[idx]

        # Slicing
        check_arr_seq(self.seq[:5], self.data[:5])
        check_arr_seq(self.seq[::-2], self.data[::-2])
        check_arr_seq(self.seq[100:], [])

        # List of indices
        indices = [4, 1, 1, 7]
        check_arr_seq(self.seq[indices], [self.data[i] for i in indices])

        # Array of indices
        check_arr_seq(self.seq[np.array(indices)],
                      [self.data[i] for i in indices])

        # Boolean mask
        mask = np.zeros(len(self.seq), dtype=bool)
        mask[[0, 3, 9]] = True
        check_arr_seq(self.seq[mask], [self.data[i] for i in (0, 3, 9)])

        # Selections are copies
        sub = self.seq[:2]
        sub[0][:] = 0
        assert_array_equal(self.seq[0], self.data[0])

        with pytest.raises(TypeError):
            self.seq[1.5]
        with pytest.raises(TypeError):
            self.seq['a']

    def test_arraysequence_setitem(self):
        seq = self.seq.copy()
        seq[1] = np.zeros_like(self.data[1])
        assert_array_equal(seq[1], 0)
        assert_array_equal(seq[0], self.data[0])
        with pytest.raises(TypeError):
            seq[1:3] = 0

    def test_length_of_array(self):
        for i, length in enumerate(self.lengths):
            assert self.seq.length_of_array(i) == length
        with pytest.raises(IndexError):
            self.seq.length_of_array(len(self.seq))

    def test_filter(self):
        long_ones = self.seq.filter(lambda arr: len(arr) > 30)
        check_arr_seq(long_ones, [d for d in self.data if len(d) > 30])
        check_arr_seq(self.seq.filter(lambda arr: False), [])

    def test_iteration(self):
        assert_arrays_equal(self.seq, self.data)
        # Restartable
        assert_arrays_equal(self.seq, self.data)
        assert_arrays_equal(reversed(self.seq), self.data[::-1])

        # Mutable through the iterated views
        seq = self.seq.copy()
        for arr in seq:
            arr[:] = 1
        assert np.all(seq.data == 1)

    def test_copy(self):
        seq = ArraySequence()
        seq.append(np.ones((2, 3)))
        seq.push([2, 2, 2])
        copy = seq.copy()
        check_arr_seq(copy, [np.ones((2, 3))])
        copy[0][:] = 7
        assert_array_equal(seq[0], 1)

    def test_shrink_data(self):
        seq = ArraySequence(dtype=np.float32)
        seq.append(np.ones((3, 3)))
        assert seq._data.shape[0] >= 3
        seq.shrink_data()
        assert seq._data.shape[0] == 3
        check_arr_seq(seq, [np.ones((3, 3))])

    def test_repr(self):
        repr(self.seq)
        repr(ArraySequence())
        # Long sequences are shortened
        with np.printoptions(threshold=5, edgeitems=2):
            text = repr(self.seq)
        assert '...' in text
        assert text.startswith('ArraySequence(')


def test_is_array_sequence():
    assert is_array_sequence(ArraySequence())
    assert not is_array_sequence([np.ones((2, 3))])
    assert not is_array_sequence(np.ones((2, 3)))
