# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
""" Read, check and write the 1000 byte TrackVis header

Definition of the trackvis header structure:
http://www.trackvis.org/docs/?subsect=fileformat

The header describes the voxel grid the streamlines were tracked in, and
declares how many scalar values follow every point and how many property
values follow every streamline, with up to 10 names each.

Streamline points are stored in TrackVis ``voxmm`` space: voxel coordinates
scaled by the voxel sizes, with the origin at the corner of the first voxel.
:func:`get_affine_trackvis_to_rasmm` computes the affine bringing them to
world RAS+ millimeters, with the origin at the voxel center.
"""
import os

import numpy as np

from .affines import AffineError, dot_reduce, inv_affine, to_matvec
from .geometry import sform_affine
from .orientations import (aff2axcodes, axcodes2ornt, ornt_transform,
                           inv_ornt_aff)
from .batteryrunners import Report
from .utils import endian_label, native_code
from .wrapstruct import WrapStruct

MAX_NB_NAMED_SCALARS_PER_POINT = 10
MAX_NB_NAMED_PROPERTIES_PER_STREAMLINE = 10
NAME_LENGTH = 20
#: a repeat count is a single digit
MAX_NAME_REPEAT = 9
HEADER_SIZE = 1000
MAGIC_NUMBER = b'TRACK'
#: byte offset of the streamline count, patched when a writer is closed
NB_STREAMLINES_OFFSET = 988
#: TrackVis software assumes this voxel order when none is given
DEFAULT_VOXEL_ORDER = b'LPS'

# Version 2 adds a 4x4 matrix giving the affine transformation going
# from voxel coordinates in the referenced 3D voxel matrix, to xyz
# coordinates (axes L->R, P->A, I->S). If (0 based) value [3, 3] from
# this matrix is 0, this means the matrix is not recorded.
header_2_dtd = [('id_string', 'S6'),
                ('dim', 'i2', (3,)),
                ('voxel_size', 'f4', (3,)),
                ('origin', 'f4', (3,)),
                ('n_scalars', 'i2'),
                ('scalar_name', 'S20', (MAX_NB_NAMED_SCALARS_PER_POINT,)),
                ('n_properties', 'i2'),
                ('property_name', 'S20',
                 (MAX_NB_NAMED_PROPERTIES_PER_STREAMLINE,)),
                ('vox_to_ras', 'f4', (4, 4)),  # New in version 2.
                ('reserved', 'S444'),
                ('voxel_order', 'S4'),
                ('pad2', 'S4'),
                ('image_orientation_patient', 'f4', (6,)),
                ('pad1', 'S2'),
                ('invert_x', 'u1'),
                ('invert_y', 'u1'),
                ('invert_z', 'u1'),
                ('swap_xy', 'u1'),
                ('swap_yz', 'u1'),
                ('swap_zx', 'u1'),
                ('n_count', 'i4'),
                ('version', 'i4'),
                ('hdr_size', 'i4'),
                ]

# Full header numpy dtypes
header_2_dtype = np.dtype(header_2_dtd)


class HeaderError(Exception):
    """ Raised when a TrackVis header is invalid """


class DataError(Exception):
    """ Raised when streamline data do not match their header """


class TruncatedFileError(EOFError):
    """ Raised when a file ends in the middle of the header or a streamline """


def _as_str(value):
    """ Text from a bytes header field, or from a 0-d array holding one """
    if hasattr(value, 'item'):
        value = value.item()
    if isinstance(value, bytes):
        value = value.decode('latin1')
    return value


def encode_name(name, count=1, max_name_len=NAME_LENGTH):
    """ Return the name table entry for `name` covering `count` channels

    `name` alone if `count` is 1, else `name`, ``\\x00`` and `count` as one
    ASCII digit, the legacy TrackVis encoding of repeated names.

    Parameters
    ----------
    name : str
        Name of the channel(s).  Must be pure ASCII.
    count : int, optional
        Number of consecutive channels sharing `name`, from 1 to 9.
    max_name_len : int, optional
        Length of a name table slot.

    Returns
    -------
    encoded : bytes

    Examples
    --------
    >>> encode_name('fa')
    b'fa'
    >>> encode_name('colors', 3)
    b'colors\\x003'
    """
    try:
        encoded = name.encode('ascii')
    except UnicodeEncodeError:
        raise HeaderError(f'Name {name!r} is not pure ASCII.') from None
    if not 1 <= count <= MAX_NAME_REPEAT:
        raise HeaderError(f'Name {name!r} must cover from 1 to '
                          f'{MAX_NAME_REPEAT} channels, not {count}.')
    if count > 1:
        encoded += b'\x00' + str(count).encode('ascii')
    if len(encoded) > max_name_len:
        raise HeaderError(f"Name {name!r} (encoded as {encoded!r}) is longer "
                          f"than {max_name_len} bytes.")
    return encoded


def _decode_slot(slot):
    """ Name and repeat count stored in one name table slot """
    end = slot.find(b'\x00')
    if end == -1:
        return slot.decode('latin1'), 1
    name = slot[:end].decode('latin1')
    marker = slot[end + 1:].split(b'\x00', 1)[0]
    if not marker:
        return name, 1
    if len(marker) != 1:
        raise HeaderError(f'Wrong name encoding for {name!r}: {slot!r}')
    count = marker[0]
    # ASCII digit, or a raw byte count
    if count >= ord('0'):
        count -= ord('0')
    if not 1 <= count <= MAX_NAME_REPEAT:
        raise HeaderError(f'Wrong repeat count for {name!r}: {slot!r}')
    return name, count


def _unnamed_slots(nb):
    """ Name table entries for `nb` consecutive channels without a name """
    slots = []
    while nb > 0:
        count = min(nb, MAX_NAME_REPEAT)
        # Empty name with an explicit count; an all-zero slot ends the table
        slots.append(b'\x00' + str(count).encode('ascii'))
        nb -= count
    return slots


def decode_names(block, nb=None, name_len=NAME_LENGTH):
    """ Decode a name table (10 slots of 20 bytes)

    A slot holds a name terminated by ``\\x00``.  If the byte following the
    terminator is not ``\\x00``, it gives the number of consecutive channels
    sharing this name, from 1 to 9, as one ASCII digit or a raw byte.  A slot
    with an empty name and a count stands for unnamed channels.  Scanning
    stops at the first all-zero slot.

    Parameters
    ----------
    block : bytes or ndarray
        The raw name table.
    nb : None or int, optional
        Number of channels declared in the header.  If given, the output has
        exactly `nb` names: extra names are dropped and unnamed channels get
        ``''``.

    Returns
    -------
    names : list of str
        One name per channel.

    Examples
    --------
    >>> block = b'colors\\x003'.ljust(20, b'\\x00') + b'fa'.ljust(180, b'\\x00')
    >>> decode_names(block)
    ['colors', 'colors', 'colors', 'fa']
    """
    if nb == 0:
        return []
    if hasattr(block, 'tobytes'):
        block = block.tobytes()
    names = []
    for start in range(0, len(block), name_len):
        slot = bytes(block[start:start + name_len])
        if not slot.strip(b'\x00'):
            break
        name, count = _decode_slot(slot)
        names.extend([name] * count)
        if nb is not None and len(names) >= nb:
            break
    if nb is None:
        return names
    return names[:nb] + [''] * (nb - len(names))


def get_affine_trackvis_to_rasmm(header):
    """ Get affine mapping trackvis voxelmm space to RAS+ mm space

    The streamlines in a trackvis file are in 'voxelmm' space, where the
    coordinates refer to the corner of the voxel.

    Compute the affine matrix that will bring them back to RAS+ mm space, where
    the coordinates refer to the center of the voxel.

    Parameters
    ----------
    header : :class:`TrkHeader` or mapping
        TrackVis header, or anything giving access to its ``voxel_size``,
        ``voxel_order``, ``vox_to_ras`` and ``dim`` fields.

    Returns
    -------
    aff_tv2ras : shape (4, 4) float32 array
        Affine array mapping coordinates in 'voxelmm' space to RAS+ mm space.

    Raises
    ------
    AffineError
        If a voxel size is zero.
    HeaderError
        If the voxel order is not made of three axis codes.
    """
    voxel_sizes = np.asarray(header['voxel_size'], dtype=np.float64)
    if np.any(voxel_sizes == 0):
        raise AffineError(f'Voxel sizes cannot be zero: {voxel_sizes}')

    # voxelmm -> voxel
    scale = np.eye(4)
    scale[range(3), range(3)] /= voxel_sizes

    # TrackVis considers coordinate (0,0,0) to be the corner of the
    # voxel whereas we want (0,0,0) to be the center of the voxel.
    offset = np.eye(4)
    offset[:-1, -1] -= 0.5

    # If the voxel order implied by the affine does not match the voxel
    # order in the TRK header, change the orientation.
    # voxel (header) -> voxel (affine)
    vox_to_ras = np.asarray(header['vox_to_ras'], dtype=np.float64)
    vox_order = _as_str(header['voxel_order']).upper()
    try:
        header_ornt = axcodes2ornt(vox_order)
    except ValueError as e:
        raise HeaderError(f'Invalid voxel order {vox_order!r}') from e
    affine_ornt = axcodes2ornt(aff2axcodes(vox_to_ras))
    ornt = ornt_transform(header_ornt, affine_ornt)
    M = inv_ornt_aff(ornt, header['dim'])

    # voxel -> rasmm
    affine = dot_reduce(vox_to_ras, M, offset, scale)
    return affine.astype(np.float32)


def get_affine_rasmm_to_trackvis(header):
    return inv_affine(get_affine_trackvis_to_rasmm(header))


class TrkHeader(WrapStruct):
    """ TrackVis header, version 1 or 2

    Fields are accessed by name, as for a numpy structured array::

        hdr = TrkHeader()
        hdr['voxel_size'] = [2, 2, 2]

    Files can be big or little endian; the byte order is found from the
    ``version`` field when reading, and headers are always written little
    endian.
    """
    template_dtype = header_2_dtype
    MAGIC_NUMBER = MAGIC_NUMBER
    HEADER_SIZE = HEADER_SIZE
    SUPPORTED_VERSIONS = (1, 2)

    @classmethod
    def from_fileobj(klass, fileobj, endianness=None, check=True):
        """ Read header from the current position of `fileobj`

        Raises
        ------
        TruncatedFileError
            If fewer than 1000 bytes could be read.
        """
        raw = fileobj.read(klass.HEADER_SIZE)
        if len(raw) < klass.HEADER_SIZE:
            name = getattr(fileobj, 'description', None)
            if name is None:
                name = getattr(fileobj, 'name', None) or '<fileobj>'
            raise TruncatedFileError(
                f'Expected {klass.HEADER_SIZE} bytes of TrackVis header in '
                f'{name}, got {len(raw)}')
        return klass(raw, endianness, check)

    @classmethod
    def default_structarr(klass, endianness=None):
        """ Return header data for a default TrackVis header """
        hdr_data = super().default_structarr(endianness)
        hdr_data['id_string'] = klass.MAGIC_NUMBER
        hdr_data['dim'] = 1
        hdr_data['voxel_size'] = 1
        hdr_data['vox_to_ras'] = np.eye(4)
        hdr_data['voxel_order'] = b'RAS'
        hdr_data['version'] = 2
        hdr_data['hdr_size'] = klass.HEADER_SIZE
        return hdr_data

    @classmethod
    def guessed_endian(klass, hdr):
        """ Guess byte order from the ``version`` field

        The version is a small number, so when read as little endian a value
        above 255 means the file is big endian.

        Parameters
        ----------
        hdr : mapping-like
            header data, read with the native byte order.

        Returns
        -------
        endianness : {'<', '>'}
        """
        version = np.asarray(hdr['version'])
        if native_code != '<':
            version = version.byteswap()
        return '>' if int(version) > 255 else '<'

    @classmethod
    def from_image_geometry(klass, dim, pixdim, srow_x, srow_y, srow_z):
        """ Header matching the voxel grid of a reference image

        Parameters
        ----------
        dim : sequence of 8 ints
            Image dimensions; ``dim[1:4]`` are the three spatial sizes.
        pixdim : sequence of 8 floats
            Voxel spacing; ``pixdim[1:4]`` are the three voxel sizes.
        srow_x, srow_y, srow_z : sequences of 4 floats
            Rows of the voxel to world affine.

        Returns
        -------
        hdr : :class:`TrkHeader`
        """
        hdr = klass()
        hdr['dim'] = np.asarray(dim)[1:4]
        hdr['voxel_size'] = np.asarray(pixdim)[1:4]
        hdr.set_vox_to_ras(sform_affine(srow_x, srow_y, srow_z))
        return hdr

    def write_to(self, fileobj):
        """ Write header, little endian, at the current position of `fileobj`
        """
        hdr = self if self.endianness == '<' else self.as_byteswapped('<')
        fileobj.write(hdr.binaryblock)

    @staticmethod
    def write_nb_streamlines(fileobj, nb_streamlines, beginning=0):
        """ Overwrite the streamline count of a header already written

        Parameters
        ----------
        fileobj : file-like
            Seekable, writable file holding a little endian header starting
            at `beginning`.
        nb_streamlines : int
        beginning : int, optional
            Position of the header in `fileobj`.
        """
        if not 0 <= nb_streamlines <= np.iinfo(np.int32).max:
            raise HeaderError(f'Cannot store {nb_streamlines} streamlines in '
                              'a TrackVis header.')
        fileobj.seek(beginning + NB_STREAMLINES_OFFSET, os.SEEK_SET)
        fileobj.write(np.array(nb_streamlines, dtype='<i4').tobytes())

    @property
    def version(self):
        return int(self._structarr['version'])

    @property
    def nb_streamlines(self):
        """ Streamline count; 0 when unknown """
        return int(self._structarr['n_count'])

    @nb_streamlines.setter
    def nb_streamlines(self, value):
        self._structarr['n_count'] = value

    @property
    def nb_scalars_per_point(self):
        return int(self._structarr['n_scalars'])

    @property
    def nb_properties_per_streamline(self):
        return int(self._structarr['n_properties'])

    def get_dimensions(self):
        return tuple(int(d) for d in self._structarr['dim'])

    def get_voxel_sizes(self):
        return tuple(float(v) for v in self._structarr['voxel_size'])

    def get_voxel_order(self):
        return _as_str(self._structarr['voxel_order']).upper()

    def get_scalars_name(self):
        """ One name per scalar channel, ``''`` for unnamed channels """
        return decode_names(self._structarr['scalar_name'],
                            self.nb_scalars_per_point)

    def get_properties_name(self):
        """ One name per property channel, ``''`` for unnamed channels """
        return decode_names(self._structarr['property_name'],
                            self.nb_properties_per_streamline)

    def _add_name(self, name_field, count_field, max_nb, name, count):
        nb = int(self._structarr[count_field])
        if nb + count > max_nb:
            raise HeaderError(f'Cannot have more than {max_nb} channels in '
                              f'{count_field}, already have {nb}.')
        new_slot = encode_name(name, count)
        # Existing entries, cut or padded to the `nb` declared channels, so
        # that the new name goes to channel `nb`
        slots = []
        nb_named = 0
        for slot in self._structarr[name_field]:
            if nb_named >= nb or not slot.strip(b'\x00'):
                break
            slot_name, slot_count = _decode_slot(slot)
            if nb_named + slot_count > nb:
                slot_count = nb - nb_named
                slot = encode_name(slot_name, slot_count)
            slots.append(slot)
            nb_named += slot_count
        slots += _unnamed_slots(nb - nb_named)
        slots.append(new_slot)
        table = self._structarr[name_field]
        table[:] = b''
        table[:len(slots)] = slots
        self._structarr[count_field] = nb + count

    def add_scalar(self, name, count=1):
        """ Declare `count` more scalar channel(s) per point, named `name`

        Channels the header declares without a name keep no name, the new
        name goes to the first added channel.

        Raises
        ------
        HeaderError
            If there would be more than 10 scalar channels, or `count` is
            not from 1 to 9.  Also if the name is not ASCII or does not fit
            in 20 bytes.
        """
        self._add_name('scalar_name', 'n_scalars',
                       MAX_NB_NAMED_SCALARS_PER_POINT, name, count)

    def add_property(self, name, count=1):
        """ Declare `count` more property channel(s) per streamline

        See :meth:`add_scalar` for the failure modes.
        """
        self._add_name('property_name', 'n_properties',
                       MAX_NB_NAMED_PROPERTIES_PER_STREAMLINE, name, count)

    def set_vox_to_ras(self, affine):
        """ Set ``vox_to_ras`` and the matching ``voxel_order`` """
        affine = np.asarray(affine)
        axcodes = aff2axcodes(affine)
        if None in axcodes:
            raise HeaderError('Could not determine the axis directions from '
                              f'affine:\n{affine}')
        self._structarr['vox_to_ras'] = affine
        self._structarr['voxel_order'] = ''.join(axcodes).encode('ascii')

    def get_affine(self):
        """ Affine mapping TrackVis voxmm space to RAS+ mm space """
        return get_affine_trackvis_to_rasmm(self)

    def get_affine_and_translation(self):
        """ The 3x3 part and the translation of :meth:`get_affine` """
        return to_matvec(self.get_affine())

    @classmethod
    def _get_checks(klass):
        return (klass._chk_magic,
                klass._chk_hdr_size,
                klass._chk_version,
                klass._chk_nb_channels,
                klass._chk_voxel_size,
                klass._chk_vox_to_ras,
                klass._chk_voxel_order,
                klass._chk_axcodes)

    @staticmethod
    def _chk_magic(hdr, fix=False):
        rep = Report(HeaderError)
        magic = hdr['id_string'].item()
        if magic[:5] == MAGIC_NUMBER:
            return hdr, rep
        rep.problem_level = 40
        rep.problem_msg = f'Invalid magic number {magic!r}; expected {MAGIC_NUMBER!r}'
        return hdr, rep

    @staticmethod
    def _chk_hdr_size(hdr, fix=False):
        rep = Report(HeaderError)
        if hdr['hdr_size'] == HEADER_SIZE:
            return hdr, rep
        rep.problem_level = 40
        rep.problem_msg = f"Invalid hdr_size: {hdr['hdr_size']} instead of {HEADER_SIZE}"
        return hdr, rep

    @staticmethod
    def _chk_version(hdr, fix=False):
        rep = Report(HeaderError)
        if int(hdr["version"]) in TrkHeader.SUPPORTED_VERSIONS:
            return hdr, rep
        rep.problem_level = 40
        rep.problem_msg = (f"Unsupported version {hdr['version']}: only versions "
                           '1 and 2 of the TrackVis file format can be read')
        return hdr, rep

    @staticmethod
    def _chk_nb_channels(hdr, fix=False):
        rep = Report(HeaderError)
        n_scalars = int(hdr['n_scalars'])
        n_properties = int(hdr['n_properties'])
        if (0 <= n_scalars <= MAX_NB_NAMED_SCALARS_PER_POINT and
                0 <= n_properties <= MAX_NB_NAMED_PROPERTIES_PER_STREAMLINE):
            return hdr, rep
        rep.problem_level = 40
        rep.problem_msg = (f'n_scalars ({n_scalars}) and n_properties '
                           f'({n_properties}) should be between 0 and 10')
        return hdr, rep

    @staticmethod
    def _chk_voxel_size(hdr, fix=False):
        rep = Report(HeaderError)
        voxel_size = hdr['voxel_size']
        if np.all(np.isfinite(voxel_size)) and not np.any(voxel_size == 0):
            return hdr, rep
        rep.problem_level = 40
        rep.problem_msg = f'voxel_size should be finite and non zero, not {voxel_size}'
        return hdr, rep

    @staticmethod
    def _chk_vox_to_ras(hdr, fix=False):
        rep = Report(HeaderError)
        # Version 1 has no 4x4 matrix, those bytes are reserved.
        if hdr['version'] != 1 and hdr['vox_to_ras'][3, 3] != 0:
            return hdr, rep
        rep.problem_level = 30
        rep.problem_msg = "Field 'vox_to_ras' in the TRK's header was not recorded"
        if fix:
            hdr['vox_to_ras'] = np.eye(4)
            rep.fix_msg = 'assuming it is the identity'
        return hdr, rep

    @staticmethod
    def _chk_voxel_order(hdr, fix=False):
        rep = Report(HeaderError)
        order = _as_str(hdr['voxel_order'])
        if order == '':
            rep.problem_level = 30
            rep.problem_msg = 'Voxel order is not specified'
            if fix:
                hdr['voxel_order'] = DEFAULT_VOXEL_ORDER
                rep.fix_msg = ("assuming 'LPS' since it is Trackvis "
                               "software's default")
            return hdr, rep
        try:
            ornt = axcodes2ornt(order.upper())
        except ValueError:
            ornt = None
        if ornt is not None and len(ornt) == 3 and set(ornt[:, 0]) == {0, 1, 2}:
            return hdr, rep
        rep.problem_level = 40
        rep.problem_msg = f'Invalid voxel order {order!r}'
        return hdr, rep

    @staticmethod
    def _chk_axcodes(hdr, fix=False):
        rep = Report(HeaderError)
        vox_to_ras = hdr['vox_to_ras']
        if np.all(np.isfinite(vox_to_ras)) and None not in aff2axcodes(vox_to_ras):
            return hdr, rep
        rep.problem_level = 40
        rep.problem_msg = ("The 'vox_to_ras' affine is invalid! Could not "
                           'determine the axis directions from it.\n'
                           f'{vox_to_ras}')
        return hdr, rep

    def __str__(self):
        """ Gets a formatted string of the header of a TRK file. """
        hdr = self._structarr
        scalar_names = [name for name in self.get_scalars_name() if name]
        property_names = [name for name in self.get_properties_name() if name]
        return '\n'.join([
            f"MAGIC NUMBER: {_as_str(hdr['id_string'])}",
            f"v.{hdr['version']}",
            f"dim: {hdr['dim']}",
            f"voxel_sizes: {hdr['voxel_size']}",
            f"origin: {hdr['origin']}",
            f"nb_scalars: {hdr['n_scalars']}",
            'scalar_names:\n  ' + '\n  '.join(scalar_names),
            f"nb_properties: {hdr['n_properties']}",
            'property_names:\n  ' + '\n  '.join(property_names),
            f"vox_to_world:\n{hdr['vox_to_ras']}",
            f"voxel_order: {_as_str(hdr['voxel_order'])}",
            f"image_orientation_patient: {hdr['image_orientation_patient']}",
            f"invert_x: {hdr['invert_x']}",
            f"invert_y: {hdr['invert_y']}",
            f"invert_z: {hdr['invert_z']}",
            f"swap_xy: {hdr['swap_xy']}",
            f"swap_yz: {hdr['swap_yz']}",
            f"swap_zx: {hdr['swap_zx']}",
            f"n_count: {hdr['n_count']}",
            f"hdr_size: {hdr['hdr_size']}",
            f"endianness: {endian_label(self.endianness)}",
        ])
