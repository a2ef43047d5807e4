""" Tests for the streaming TrackVis reader
"""
import logging
from io import BytesIO

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal, assert_array_equal

from ..affines import AffineError
from ..header import DataError, HeaderError, TruncatedFileError
from ..reader import RASMM, VOXEL, VOXMM, TrkReader
from ..testing import (COMPLEX_PROPERTIES, COMPLEX_PROPERTY_NAMES,
                       COMPLEX_SCALAR_NAMES, COMPLEX_SCALARS,
                       SIMPLE_STREAMLINES, STORED_SIMPLE_STREAMLINES,
                       assert_arrays_equal, complex_header, complex_trk,
                       empty_trk, make_header, simple_header, simple_trk,
                       trk_bytesio)
from ..tractogram import Tractogram, TractogramItem


def test_empty_file():
    with TrkReader(empty_trk()) as reader:
        assert reader.header.nb_streamlines == 0
        assert list(reader) == []
    with TrkReader(empty_trk()) as reader:
        tractogram = reader.read_all()
    assert isinstance(tractogram, Tractogram)
    assert len(tractogram) == 0
    assert len(tractogram.scalars) == 0
    assert len(tractogram.properties) == 0


def test_simple_file():
    with TrkReader(simple_trk()) as reader:
        assert reader.mode == RASMM
        tractogram = reader.read_all()
        assert reader.nb_streamlines_read == 3
    assert_arrays_equal(tractogram.streamlines, SIMPLE_STREAMLINES)
    assert tractogram.streamlines.dtype == np.float32
    assert_array_equal(tractogram.streamlines.lengths, [1, 2, 5])
    assert tractogram.nb_scalars_per_point == 0
    assert tractogram.nb_properties_per_streamline == 0


def test_iteration():
    with TrkReader(simple_trk()) as reader:
        items = list(reader)
        # Single pass
        assert list(reader) == []
    assert all(isinstance(item, TractogramItem) for item in items)
    assert_arrays_equal([item.streamline for item in items], SIMPLE_STREAMLINES)
    assert items[0].scalars.shape == (1, 0)
    assert items[0].properties.shape == (0,)

    with TrkReader(simple_trk()) as reader:
        assert_arrays_equal(reader.iter_streamlines(), SIMPLE_STREAMLINES)

    with TrkReader(simple_trk()) as reader:
        streamlines = reader.read_streamlines()
    assert_arrays_equal(streamlines, SIMPLE_STREAMLINES)


def test_items_do_not_share_memory():
    with TrkReader(complex_trk()) as reader:
        first, second = next(reader), next(reader)
    assert_array_equal(first.streamline, SIMPLE_STREAMLINES[0])
    assert_array_equal(first.scalars, COMPLEX_SCALARS[0])
    assert_array_equal(first.properties, COMPLEX_PROPERTIES[0])
    assert_array_equal(second.scalars, COMPLEX_SCALARS[1])


def test_complex_file():
    with TrkReader(complex_trk()) as reader:
        assert reader.header.get_scalars_name() == COMPLEX_SCALAR_NAMES
        assert reader.header.get_properties_name() == COMPLEX_PROPERTY_NAMES
        tractogram = reader.read_all()
    assert_arrays_equal(tractogram.streamlines, SIMPLE_STREAMLINES)
    assert tractogram.nb_scalars_per_point == 4
    assert tractogram.nb_properties_per_streamline == 5
    assert_arrays_equal(tractogram.scalars, COMPLEX_SCALARS)
    assert_arrays_equal(tractogram.properties, COMPLEX_PROPERTIES)
    # Colors are the first three scalar channels
    assert_array_equal(tractogram[2].scalars[:, :3], [[0, 0, 1]] * 5)


def test_big_endian_file():
    with TrkReader(complex_trk('>')) as reader:
        assert reader.endianness == '>'
        assert reader.header.nb_streamlines == 3
        tractogram = reader.read_all()
    assert_arrays_equal(tractogram.streamlines, SIMPLE_STREAMLINES)
    assert_arrays_equal(tractogram.scalars, COMPLEX_SCALARS)
    assert_arrays_equal(tractogram.properties, COMPLEX_PROPERTIES)
    assert tractogram.streamlines.dtype == np.float32
    assert tractogram.streamlines.dtype.isnative


def test_read_from_path(tmp_path):
    fname = tmp_path / 'simple.trk'
    fname.write_bytes(simple_trk().getvalue())
    with TrkReader(fname) as reader:
        assert_arrays_equal(reader.read_streamlines(), SIMPLE_STREAMLINES)
    assert reader._opener.closed
    with TrkReader(str(fname)) as reader:
        assert len(reader.read_all()) == 3
    with pytest.raises(OSError):
        TrkReader(tmp_path / 'missing.trk')


def test_fileobj_is_not_closed():
    bio = simple_trk()
    with TrkReader(bio) as reader:
        reader.read_all()
    assert not bio.closed


def test_read_after_offset():
    bio = BytesIO()
    bio.write(b'garbage')
    bio.write(simple_trk().getvalue())
    bio.seek(7)
    with TrkReader(bio) as reader:
        assert_arrays_equal(reader.read_streamlines(), SIMPLE_STREAMLINES)


def test_raw_mode():
    with TrkReader(simple_trk()) as reader:
        assert reader.to_raw() is reader
        assert reader.mode == VOXMM
        streamlines = reader.read_streamlines()
    assert_arrays_equal(streamlines, STORED_SIMPLE_STREAMLINES)


def test_voxel_space_mode():
    hdr = simple_header(voxel_size=[2, 4, 0.5])
    stored = [s * [2, 4, 0.5] for s in SIMPLE_STREAMLINES]
    with TrkReader(trk_bytesio(hdr, stored)) as reader:
        reader.to_voxel_space()
        assert reader.mode == VOXEL
        streamlines = reader.read_streamlines()
    assert_arrays_equal(streamlines, SIMPLE_STREAMLINES)
    # Explicit spacing; no rotation or translation applied
    with TrkReader(trk_bytesio(hdr, stored)) as reader:
        reader.to_voxel_space([1, 1, 1])
        assert_arrays_equal(reader.read_streamlines(), stored)
    with TrkReader(trk_bytesio(hdr, stored)) as reader:
        with pytest.raises(ValueError):
            reader.to_voxel_space([1, 0, 1])
        with pytest.raises(ValueError):
            reader.to_voxel_space([1, 1])


def test_mode_set_once_before_reading():
    with TrkReader(simple_trk()) as reader:
        reader.to_raw()
        with pytest.raises(ValueError):
            reader.to_voxel_space()
        with pytest.raises(ValueError):
            reader.to_raw()
    with TrkReader(simple_trk()) as reader:
        next(reader)
        with pytest.raises(ValueError):
            reader.to_raw()


def test_voxel_order_mismatch():
    # Declared LAS while vox_to_ras is RAS: x is flipped over the grid
    hdr = simple_header(dim=[10, 10, 10], voxel_order=b'LAS')
    points = np.array([[0.5, 0.5, 0.5], [9.5, 1.5, 2.5]], dtype='f4')
    with TrkReader(trk_bytesio(hdr, [points])) as reader:
        streamline = next(reader).streamline
    assert_array_almost_equal(streamline, [[9, 0, 0], [0, 1, 2]])


def test_affine():
    vox_to_ras = np.array([[-2, 0, 0, 90],
                           [0, 2, 0, -126],
                           [0, 0, 2, -72],
                           [0, 0, 0, 1]])
    hdr = make_header(dim=[91, 109, 91], voxel_size=[2, 2, 2],
                      vox_to_ras=vox_to_ras, voxel_order=b'LAS')
    # Corner of the first voxel, then its center
    points = np.array([[0, 0, 0], [1, 1, 1]], dtype='f4')
    with TrkReader(trk_bytesio(hdr, [points])) as reader:
        assert_array_equal(reader.affine, hdr.get_affine())
        streamline = next(reader).streamline
    assert_array_almost_equal(streamline, [[91, -127, -73], [90, -126, -72]])


def test_zero_point_records(caplog):
    hdr = simple_header(n_count=4)
    streamlines = [STORED_SIMPLE_STREAMLINES[0], np.zeros((0, 3)),
                   STORED_SIMPLE_STREAMLINES[1], STORED_SIMPLE_STREAMLINES[2]]
    expected = [SIMPLE_STREAMLINES[0], np.zeros((0, 3)),
                SIMPLE_STREAMLINES[1], SIMPLE_STREAMLINES[2]]
    # Iteration gives them
    with TrkReader(trk_bytesio(hdr, streamlines)) as reader:
        items = list(reader)
    assert len(items) == 4
    assert items[1].streamline.shape == (0, 3)
    # Bulk reading keeps them, with nothing to warn about
    with caplog.at_level(logging.WARNING, logger='trkio.global'):
        with TrkReader(trk_bytesio(hdr, streamlines)) as reader:
            tractogram = reader.read_all()
            assert reader.nb_streamlines_read == 4
        with TrkReader(trk_bytesio(hdr, streamlines)) as reader:
            bare = reader.read_streamlines()
    assert caplog.text == ''
    for seq in (tractogram.streamlines, bare):
        assert len(seq) == 4
        assert_array_equal(seq.lengths, [1, 0, 2, 5])
        assert seq[1].shape == (0, 3)
        for got, want in zip(seq, expected):
            assert_array_almost_equal(got, want)


def test_only_zero_point_records():
    hdr = complex_header(n_count=2)
    streamlines = [np.zeros((0, 3)), np.zeros((0, 3))]
    scalars = [np.zeros((0, 4)), np.zeros((0, 4))]
    properties = [np.arange(5), np.arange(5) + 5]
    bio = trk_bytesio(hdr, streamlines, scalars, properties)
    with TrkReader(bio) as reader:
        tractogram = reader.read_all()
    assert len(tractogram) == 2
    assert_array_equal(tractogram.streamlines.lengths, [0, 0])
    assert tractogram.streamlines.common_shape == (3,)
    assert_array_equal(tractogram.scalars.lengths, [0, 0])
    assert_array_equal(tractogram.properties[1], np.arange(5) + 5)


def test_count_mismatch_warning(caplog):
    with caplog.at_level(logging.WARNING, logger='trkio.global'):
        with TrkReader(trk_bytesio(simple_header(n_count=5),
                                   STORED_SIMPLE_STREAMLINES)) as reader:
            assert len(reader.read_all()) == 3
    assert 'declares 5 streamlines, but 3 were read' in caplog.text
    caplog.clear()
    # 0 means unknown count
    with caplog.at_level(logging.WARNING, logger='trkio.global'):
        with TrkReader(trk_bytesio(simple_header(n_count=0),
                                   STORED_SIMPLE_STREAMLINES)) as reader:
            assert len(reader.read_all()) == 3
    assert caplog.text == ''


def test_trailing_bytes(caplog):
    bio = simple_trk()
    bio.seek(0, 2)
    bio.write(b'\x01\x00')
    bio.seek(0)
    with caplog.at_level(logging.WARNING, logger='trkio.global'):
        with TrkReader(bio) as reader:
            assert len(reader.read_all()) == 3
    assert 'trailing bytes' in caplog.text


def test_truncated_file():
    raw = complex_trk().getvalue()
    # Truncated header
    with pytest.raises(TruncatedFileError):
        TrkReader(BytesIO(raw[:999]))
    # Truncated record body, in the properties then in the points
    for cut in (1, 4 * 5 + 1):
        with TrkReader(BytesIO(raw[:-cut])) as reader:
            next(reader)
            next(reader)
            with pytest.raises(TruncatedFileError) as excinfo:
                next(reader)
    assert 'streamline 2' in str(excinfo.value)
    with TrkReader(BytesIO(raw[:-1])) as reader:
        with pytest.raises(EOFError):
            reader.read_all()


def test_negative_count():
    bio = trk_bytesio(make_header(), [])
    bio.seek(0, 2)
    bio.write(np.array(-2, dtype='<i4').tobytes())
    bio.seek(0)
    with TrkReader(bio) as reader:
        with pytest.raises(DataError):
            reader.read_all()


def test_invalid_headers():
    with pytest.raises(HeaderError):
        TrkReader(trk_bytesio(make_header(id_string=b'TRICK'), []))
    with pytest.raises(AffineError):
        TrkReader(trk_bytesio(make_header(voxel_size=[0, 1, 1]), []),
                  check=False)
    # Problems below the error level are fixed
    with TrkReader(trk_bytesio(make_header(voxel_order=b''), [])) as reader:
        assert reader.header.get_voxel_order() == 'LPS'


def test_large_record():
    # Bigger than the initial scratch buffer
    points = np.arange(3000 * 3, dtype='f4').reshape((3000, 3))
    hdr = simple_header(n_count=1)
    with TrkReader(trk_bytesio(hdr, [points])) as reader:
        reader.to_raw()
        assert_array_equal(next(reader).streamline, points)
