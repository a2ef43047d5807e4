"""Define static trkio metadata for trkio

The long description parameter is used in the trkio top-level docstring.
We exec this file in ``setup.py``, so it cannot import trkio or use relative
imports.
"""

# trkio version information.  An empty _version_extra corresponds to a
# full release.  '.dev' as a _version_extra string means this is a development
# version
_version_major = 1
_version_minor = 0
_version_micro = 0
_version_extra = ''

__version__ = f'{_version_major}.{_version_minor}.{_version_micro}{_version_extra}'

description = 'Read and write TrackVis .trk tractography files'

long_description = """
Streaming read and write access to TrackVis_ ``.trk`` tractography files.

A ``.trk`` file is a fixed 1000-byte binary header describing the geometry of
the reference image, followed by any number of streamlines: variable-length
polylines of 3D points, each point optionally carrying scalar channels and
each streamline optionally carrying property channels.

trkio gives you:

* the header as a numpy structured array, with byte order detection,
  consistency checks and the packed scalar / property name tables;
* the transform from the TrackVis ``voxmm`` space to world RAS+ millimeters,
  reconciling the header voxel order with the ``vox_to_ras`` affine;
* a reader that streams streamlines one by one, or loads them all in a
  compact :class:`ArraySequence`;
* a writer that streams streamlines out and patches the streamline count in
  the header when closed.

Installation
============

::

   pip install trkio

Testing
=======

::

    pip install trkio[test]
    pytest --pyargs trkio

.. _TrackVis: http://trackvis.org/docs/?subsect=fileformat
"""

NAME = 'trkio'
MAINTAINER = 'trkio developers'
MAINTAINER_EMAIL = 'trkio-devel@python.org'
DESCRIPTION = description
LONG_DESCRIPTION = long_description
URL = 'https://github.com/trkio/trkio'
LICENSE = 'MIT license'
CLASSIFIERS = [
    'Development Status :: 4 - Beta',
    'Environment :: Console',
    'Intended Audience :: Science/Research',
    'License :: OSI Approved :: MIT License',
    'Operating System :: OS Independent',
    'Programming Language :: Python',
    'Programming Language :: Python :: 3',
    'Topic :: Scientific/Engineering',
]
PLATFORMS = 'OS Independent'
VERSION = __version__
PYTHON_REQUIRES = '>=3.10'
NUMPY_MIN_VERSION = '1.22'
REQUIRES = [f'numpy>={NUMPY_MIN_VERSION}']
EXTRAS_REQUIRE = {
    'test': ['pytest'],
}
