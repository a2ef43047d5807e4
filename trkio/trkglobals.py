# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Package wide settings for header checks and diagnostics

``error_level``: header problems (see :mod:`trkio.batteryrunners`) at this
level or above raise an error when a :class:`~trkio.header.TrkHeader` is
checked.  The levels are those of :mod:`logging`; 40 means only errors raise,
0 that every problem raises, and anything above 50 that nothing does.

``logger``: where trkio reports what it fixed or found suspicious, such as a
header fixed on read or a writer that was never closed.  Raise its level to
quieten it, for example ``logger.setLevel(40)``; ``logger.setLevel(1)`` shows
everything.
"""
import logging
from contextlib import contextmanager

error_level = 40
logger = logging.getLogger('trkio.global')
logger.addHandler(logging.StreamHandler())


@contextmanager
def error_level_as(level):
    """Use another ``error_level`` for the duration of a ``with`` block

    >>> from trkio import trkglobals
    >>> with trkglobals.error_level_as(30):
    ...     trkglobals.error_level
    30
    >>> trkglobals.error_level
    40
    """
    global error_level
    saved, error_level = error_level, level
    try:
        yield
    finally:
        error_level = saved


@contextmanager
def no_logging_output():
    """Silence ``logger`` for the duration of a ``with`` block

    Its handlers are swapped for a :class:`logging.NullHandler`, and records
    do not reach the ancestor loggers.
    """
    handlers = logger.handlers[:]
    propagate = logger.propagate
    for handler in handlers:
        logger.removeHandler(handler)
    null = logging.NullHandler()
    logger.addHandler(null)
    logger.propagate = False
    try:
        yield
    finally:
        logger.removeHandler(null)
        logger.propagate = propagate
        for handler in handlers:
            logger.addHandler(handler)
