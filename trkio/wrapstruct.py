# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
""" Fixed size binary record seen as a numpy structured array

:class:`WrapStruct` holds a 0-d structured array whose dtype carries the byte
order of the record.  Fields are read and set by name::

    hdr['voxel_size'] = [2, 2, 2]

and the usual mapping methods (``keys``, ``values``, ``items``, ``get``) are
available.  Subclasses give the dtype (``template_dtype``), the way to guess
the byte order of raw bytes (``guessed_endian``) and a battery of checks
(``_get_checks``), run when a record is built with ``check=True``.  Problems
are logged to :data:`trkio.trkglobals.logger`; those at or above
:data:`trkio.trkglobals.error_level` are raised.
"""
import numpy as np

from . import trkglobals
from .batteryrunners import BatteryRunner
from .utils import endian_codes, native_code, swapped_code


class WrapStruct:
    template_dtype = np.dtype([('integer', 'i2')])

    def __init__(self, binaryblock=None, endianness=None, check=True):
        """
        Parameters
        ----------
        binaryblock : None or bytes, optional
            Raw record.  If None, use the default record of the class.
        endianness : None or endian code, optional
            Byte order of `binaryblock`; guessed from the content if None.
        check : bool, optional
            Whether to run the checks on `binaryblock`.

        Raises
        ------
        ValueError
            If `binaryblock` does not have the size of the record.
        """
        if binaryblock is None:
            self._structarr = self.default_structarr(endianness)
            return
        dtype = self.template_dtype
        if len(binaryblock) != dtype.itemsize:
            raise ValueError(f'Expected a block of {dtype.itemsize} bytes, '
                             f'got {len(binaryblock)}')
        if endianness is None:
            native = np.ndarray((), dtype=dtype, buffer=binaryblock)
            endianness = self.guessed_endian(native)
        dtype = dtype.newbyteorder(endian_codes[endianness])
        self._structarr = np.ndarray((), dtype=dtype,
                                     buffer=binaryblock).copy()
        if check:
            self.check_fix()

    @classmethod
    def default_structarr(klass, endianness=None):
        """ Zero filled record; subclasses set the default field values """
        dtype = klass.template_dtype
        if endianness is not None:
            dtype = dtype.newbyteorder(endian_codes[endianness])
        return np.zeros((), dtype=dtype)

    @classmethod
    def guessed_endian(klass, mapping):
        """ Byte order of a record read with the native byte order """
        raise NotImplementedError

    @classmethod
    def _get_checks(klass):
        return ()

    @property
    def binaryblock(self):
        """ Raw record, in the current byte order """
        return self._structarr.tobytes()

    @property
    def endianness(self):
        """ '<' or '>'; use :meth:`as_byteswapped` to change it """
        return native_code if self._structarr.dtype.isnative else swapped_code

    def copy(self):
        return self.__class__(self.binaryblock, self.endianness, check=False)

    def as_byteswapped(self, endianness=None):
        """ Copy of the record in byte order `endianness`

        None means the opposite of the current byte order.  A copy is made
        even when the byte order does not change.
        """
        current = self.endianness
        if endianness is None:
            endianness = swapped_code if current == native_code else native_code
        endianness = endian_codes[endianness]
        if endianness == current:
            return self.copy()
        block = self._structarr.byteswap().tobytes()
        return self.__class__(block, endianness, check=False)

    def __eq__(self, other):
        """ Same field values, whatever the byte orders """
        try:
            other_block = other.as_byteswapped(self.endianness).binaryblock
        except AttributeError:
            return False
        return self.binaryblock == other_block

    def __getitem__(self, item):
        return self._structarr[item]

    def __setitem__(self, item, value):
        self._structarr[item] = value

    def __iter__(self):
        return iter(self.keys())

    def keys(self):
        return list(self.template_dtype.names)

    def values(self):
        return [self._structarr[key] for key in self.keys()]

    def items(self):
        return zip(self.keys(), self.values())

    def get(self, k, d=None):
        return self._structarr[k] if k in self.keys() else d

    def check_fix(self, logger=None, error_level=None):
        """ Run the checks, fixing what can be fixed in place

        Parameters
        ----------
        logger : None or logging.Logger, optional
            Where to report problems.  Default is the package logger.
        error_level : None or int, optional
            Problems of this level or above raise.  Default is
            :data:`trkio.trkglobals.error_level`.
        """
        if logger is None:
            logger = trkglobals.logger
        if error_level is None:
            error_level = trkglobals.error_level
        battrun = BatteryRunner(self._get_checks())
        _, reports = battrun.check_fix(self)
        for report in reports:
            report.log_raise(logger, error_level)

    @classmethod
    def diagnose_binaryblock(klass, binaryblock, endianness=None):
        """ Messages of the checks failing on `binaryblock`, one per line """
        record = klass(binaryblock, endianness=endianness, check=False)
        reports = BatteryRunner(klass._get_checks()).check_only(record)
        return '\n'.join(report.message for report in reports if report.message)
