# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
""" Whole-file load and save of TrackVis files

:class:`TrkFile` holds a :class:`Tractogram` in memory along with its header.
Use :class:`trkio.reader.TrkReader` and :class:`trkio.writer.TrkWriter`
directly to stream files too big to fit in memory.
"""
import os

from .header import (MAX_NB_NAMED_PROPERTIES_PER_STREAMLINE,
                     MAX_NB_NAMED_SCALARS_PER_POINT, MAGIC_NUMBER, DataError,
                     TrkHeader)
from .openers import Opener
from .reader import RASMM, VOXEL, VOXMM, TrkReader
from .tractogram import Tractogram
from .writer import TrkWriter


class TrkFile:
    """ Convenience class to encapsulate TRK file format.

    Notes
    -----
    TrackVis (so its file format: TRK) considers the streamline coordinate
    (0,0,0) to be in the corner of the voxel whereas the RAS+ mm space used
    here takes (0,0,0) to be the center of the voxel.

    Thus, streamlines are shifted by half a voxel on load and are shifted
    back on save.
    """

    MAGIC_NUMBER = MAGIC_NUMBER

    def __init__(self, tractogram, header=None):
        """
        Parameters
        ----------
        tractogram : :class:`Tractogram` object
            Tractogram that will be contained in this :class:`TrkFile`.
        header : None or :class:`TrkHeader`, optional
            Header to save the tractogram with.  If None, a default header
            declaring the channels of `tractogram` is used.

        Notes
        -----
        Streamlines of the tractogram are assumed to be in *RAS+*
        and *mm* space where coordinate (0,0,0) refers to the center
        of the voxel.
        """
        self._tractogram = tractogram
        self._header = (self._header_for(tractogram) if header is None
                        else header)

    @staticmethod
    def _header_for(tractogram):
        """ Default header declaring the channels of `tractogram`, unnamed """
        nb_scalars = tractogram.nb_scalars_per_point
        nb_properties = tractogram.nb_properties_per_streamline
        if (nb_scalars > MAX_NB_NAMED_SCALARS_PER_POINT or
                nb_properties > MAX_NB_NAMED_PROPERTIES_PER_STREAMLINE):
            raise DataError(f'TrackVis files hold at most 10 scalars and 10 '
                            f'properties, got {nb_scalars} and {nb_properties}')
        hdr = TrkHeader()
        hdr['n_scalars'] = nb_scalars
        hdr['n_properties'] = nb_properties
        return hdr

    @property
    def tractogram(self):
        return self._tractogram

    @property
    def streamlines(self):
        return self._tractogram.streamlines

    @property
    def header(self):
        return self._header

    @property
    def affine(self):
        """ voxmm -> rasmm affine. """
        return self._header.get_affine()

    @classmethod
    def is_correct_format(cls, fileobj):
        """ Check if the file is in TRK format.

        Parameters
        ----------
        fileobj : string or file-like object
            If string, a filename; otherwise an open file-like object
            pointing to TRK file (and ready to read from the beginning
            of the TRK header data). Note that calling this function
            does not change the file position.

        Returns
        -------
        is_correct_format : {True, False}
            Returns True if `fileobj` is compatible with TRK format,
            otherwise returns False.
        """
        with Opener(fileobj) as f:
            magic_number = f.read(len(cls.MAGIC_NUMBER))
            f.seek(-len(magic_number), os.SEEK_CUR)
            return magic_number == cls.MAGIC_NUMBER

    @classmethod
    def load(cls, fileobj, mode=RASMM):
        """ Loads streamlines from a filename or file-like object.

        Parameters
        ----------
        fileobj : string or file-like object
            If string, a filename; otherwise an open file-like object
            pointing to TRK file (and ready to read from the beginning
            of the TRK header).
        mode : {'rasmm', 'voxmm', 'voxel'}, optional
            Space of the loaded points: world RAS+ mm (default), TrackVis
            voxmm as stored, or voxel coordinates.

        Returns
        -------
        trk_file : :class:`TrkFile` object
            Returns an object containing tractogram data and header
            information.
        """
        with TrkReader(fileobj) as reader:
            if mode == VOXMM:
                reader.to_raw()
            elif mode == VOXEL:
                reader.to_voxel_space()
            elif mode != RASMM:
                raise ValueError(f"Unknown mode {mode!r}; expecting one of "
                                 f"{(RASMM, VOXMM, VOXEL)}")
            tractogram = reader.read_all()
            header = reader.header
        return cls(tractogram, header)

    def save(self, fileobj):
        """ Save tractogram to a filename or file-like object using TRK format.

        Streamlines are expected in RAS+ mm space.

        Parameters
        ----------
        fileobj : string or file-like object
            If string, a filename; otherwise an open file-like object
            pointing to TRK file (and ready to write from the beginning
            of the TRK header data).

        Raises
        ------
        DataError
            If the tractogram does not have the scalar and property channels
            declared in the header.
        """
        with TrkWriter(fileobj, self._header) as writer:
            writer.write_tractogram(self._tractogram)

    def __str__(self):
        return str(self._header)


def is_supported(fileobj):
    """ Checks if the file-like object is a TrackVis file.

    Parameters
    ----------
    fileobj : string or file-like object
        If string, a filename; otherwise an open file-like object pointing
        to a streamlines file (and ready to read from the beginning of the
        header)

    Returns
    -------
    is_supported : boolean
        True if `fileobj` starts with the TrackVis magic number, or, for a
        filename that cannot be read, if it has the ``.trk`` extension.
    """
    try:
        return TrkFile.is_correct_format(fileobj)
    except OSError:
        pass
    if isinstance(fileobj, (str, os.PathLike)):
        _, ext = os.path.splitext(os.fspath(fileobj))
        return ext.lower() == '.trk'
    return False


def load(fileobj, mode=RASMM):
    """ Loads streamlines in *RAS+* and *mm* space from a file-like object.

    See :meth:`TrkFile.load`.

    Raises
    ------
    ValueError
        If `fileobj` is not a TrackVis file.
    """
    if not is_supported(fileobj):
        raise ValueError(f"Unknown format for 'fileobj': {fileobj}")
    return TrkFile.load(fileobj, mode=mode)


def save(tractogram, fileobj, header=None):
    """ Saves a tractogram to a TrackVis file.

    Parameters
    ----------
    tractogram : :class:`Tractogram` object or :class:`TrkFile` object
        Streamlines to save, in RAS+ mm space.
    fileobj : string or file-like object
        Where to save them.
    header : None or :class:`TrkHeader`, optional
        Header to use for a :class:`Tractogram`.  Must be None for a
        :class:`TrkFile`, which carries its own.
    """
    if isinstance(tractogram, Tractogram):
        trk_file = TrkFile(tractogram, header)
    else:
        trk_file = tractogram
        if header is not None:
            raise ValueError("A 'TrkFile' object was provided, no need for "
                             "a header.")
    trk_file.save(fileobj)
