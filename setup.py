#!/usr/bin/env python
# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""
Setuptools entrypoint

The package metadata lives in ``trkio/info.py``, read here without importing
trkio.  To install, use:

    pip install .

To install with the test dependencies:

    pip install .[test]
"""
import os

from setuptools import find_packages, setup

# Get version and release info, which is all stored in trkio/info.py
info = {}
with open(os.path.join('trkio', 'info.py'), 'rt') as fobj:
    exec(fobj.read(), info)

setup(
    name=info['NAME'],
    maintainer=info['MAINTAINER'],
    maintainer_email=info['MAINTAINER_EMAIL'],
    description=info['DESCRIPTION'],
    long_description=info['LONG_DESCRIPTION'],
    url=info['URL'],
    license=info['LICENSE'],
    classifiers=info['CLASSIFIERS'],
    platforms=info['PLATFORMS'],
    version=info['VERSION'],
    python_requires=info['PYTHON_REQUIRES'],
    install_requires=info['REQUIRES'],
    extras_require=info['EXTRAS_REQUIRE'],
    packages=find_packages(include=['trkio', 'trkio.*']),
)
