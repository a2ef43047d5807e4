# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
""" Run a battery of checks, and optionally fixes, over a header

A check is a callable ``check(hdr, fix=False)`` returning ``(hdr, report)``.
With ``fix=True`` it may repair `hdr` and say so in ``report.fix_msg``.  The
:class:`Report` gives the problem level, from 0 (no problem) to 50, using the
levels of the :mod:`logging` module: 30 is a warning, 40 an error.

For example, the voxel order of a TrackVis header may be missing, in which
case TrackVis assumes 'LPS'::

    def chk_voxel_order(hdr, fix=False):
        rep = Report(HeaderError)
        if hdr['voxel_order'] != b'':
            return hdr, rep
        rep.problem_level = 30
        rep.problem_msg = 'Voxel order is not specified'
        if fix:
            hdr['voxel_order'] = b'LPS'
            rep.fix_msg = "assuming 'LPS'"
        return hdr, rep

>>> from trkio.batteryrunners import BatteryRunner, Report
>>> def chk_version(hdr, fix=False):
...     rep = Report(ValueError)
...     if hdr['version'] not in (1, 2):
...         rep.problem_level = 40
...         rep.problem_msg = 'bad version'
...     return hdr, rep
>>> battrun = BatteryRunner((chk_version,))
>>> [rep.message for rep in battrun.check_only({'version': 3})]
['bad version']
"""


class BatteryRunner:
    """ Run a sequence of checks, in order, over one header """

    def __init__(self, checks):
        self._checks = tuple(checks)

    def check_only(self, obj):
        """ Reports of all checks on `obj`, which is left as is """
        return [check(obj, False)[1] for check in self._checks]

    def check_fix(self, obj):
        """ Run the checks with fixes

        Every check sees the object as fixed by the checks before it.

        Returns
        -------
        obj : object
            Fixed `obj`; checks may fix in place or return a new object.
        reports : list of :class:`Report`
        """
        reports = []
        for check in self._checks:
            obj, report = check(obj, True)
            reports.append(report)
        return obj, reports

    def __len__(self):
        return len(self._checks)


class Report:
    """ Outcome of one check

    Parameters
    ----------
    error : None or exception class, optional
        Raised by :meth:`log_raise` for a serious enough problem.  None means
        the problem can never raise.
    problem_level : int, optional
        0 for no problem, up to 50.  After a fix, the level of the problem
        left.
    problem_msg : str, optional
    fix_msg : str, optional
        What the fix did, if anything.
    """

    def __init__(self, error=Exception, problem_level=0, problem_msg='',
                 fix_msg=''):
        self.error = error
        self.problem_level = problem_level
        self.problem_msg = problem_msg
        self.fix_msg = fix_msg

    def _state(self):
        return self.error, self.problem_level, self.problem_msg, self.fix_msg

    def __eq__(self, other):
        return self._state() == other._state()

    def __repr__(self):
        return (f'Report({self.error!r}, {self.problem_level!r}, '
                f'{self.problem_msg!r}, {self.fix_msg!r})')

    @property
    def message(self):
        """ Problem message, followed by the fix message if any """
        if self.fix_msg:
            return f'{self.problem_msg}; {self.fix_msg}'
        return self.problem_msg

    def log_raise(self, logger, error_level=40):
        """ Log the message at the problem level, raise at `error_level`

        Nothing is raised for a level of 0, or when `error` is None.
        """
        logger.log(self.problem_level, self.message)
        if self.error and self.problem_level and self.problem_level >= error_level:
            raise self.error(self.problem_msg)
