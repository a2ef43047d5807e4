# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##

from .info import long_description as __doc__
from .info import __version__

__doc__ += """
Quickstart
==========

::

   import trkio

   trk = trkio.load('tracts.trk')
   streamlines = trk.streamlines    # in RAS+ mm
   print(trk.header)

   trkio.save(trk, 'tracts_copy.trk')

   # Stream a big file, one streamline at a time
   with trkio.TrkReader('tracts.trk') as reader, \\
           trkio.TrkWriter('long.trk', reader.header) as writer:
       for item in reader:
           if len(item) > 10:
               writer.write_item(item)
"""

# module imports
from . import trkglobals

# object imports
from .array_sequence import ArraySequence
from .header import (TrkHeader, HeaderError, DataError, TruncatedFileError,
                     get_affine_trackvis_to_rasmm,
                     get_affine_rasmm_to_trackvis)
from .affines import AffineError
from .orientations import OrientationError
from .tractogram import Tractogram, TractogramItem
from .reader import TrkReader
from .writer import TrkWriter
from .trk import TrkFile, load, save, is_supported
