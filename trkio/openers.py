# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Context manager openers for filenames and binary file objects

TrackVis files are written in a single pass and then revisited to patch the
streamline count in the header, so the streams handled here must be seekable.
"""

import io
import os
import typing as ty


@ty.runtime_checkable
class Fileish(ty.Protocol):
    def read(self, size: int = -1, /) -> bytes: ...
    def write(self, b: bytes, /) -> int | None: ...


class Opener:
    r"""Class to accept, maybe open, and context-manage file-likes / filenames

    Provides context manager to close files that the constructor opened for
    you.

    Parameters
    ----------
    fileish : str, os.PathLike or file-like
        if str or path, then open with :func:`open`. If file-like, accept as
        is
    \*args : positional arguments
        passed to :func:`open` when `fileish` is a path.  ``mode``, if not
        specified, is `rb`.
    \*\*kwargs : keyword arguments
        passed to :func:`open` when `fileish` is a path.
    """

    fobj: io.IOBase

    def __init__(self, fileish: str | os.PathLike | io.IOBase, *args, **kwargs):
        if isinstance(fileish, (io.IOBase, Fileish)):
            self.fobj = fileish
            self.me_opened = False
            self._name = getattr(fileish, 'name', None)
            return
        if not args and 'mode' not in kwargs:
            kwargs['mode'] = 'rb'
        fileish = os.fspath(fileish)
        self.fobj = open(fileish, *args, **kwargs)
        self._name = fileish
        self.me_opened = True

    @property
    def closed(self) -> bool:
        return self.fobj.closed

    @property
    def name(self) -> str | None:
        """Return ``self.fobj.name`` or self._name if not present

        self._name will be None if object was created with a fileobj, otherwise
        it will be the filename.
        """
        return self._name

    @property
    def description(self) -> str:
        """Name to use for this file in error messages"""
        if self._name is None or not isinstance(self._name, str):
            return f'<{self.fobj.__class__.__name__}>'
        return self._name

    def read(self, size: int = -1, /) -> bytes:
        return self.fobj.read(size)

    def readinto(self, buffer, /) -> int | None:
        if hasattr(self.fobj, 'readinto'):
            return self.fobj.readinto(buffer)
        data = self.fobj.read(len(buffer))
        buffer[:len(data)] = data
        return len(data)

    def write(self, b: bytes, /) -> int | None:
        return self.fobj.write(b)

    def seek(self, pos: int, whence: int = 0, /) -> int:
        return self.fobj.seek(pos, whence)

    def tell(self, /) -> int:
        return self.fobj.tell()

    def flush(self, /) -> None:
        if hasattr(self.fobj, 'flush'):
            self.fobj.flush()

    def close(self, /) -> None:
        return self.fobj.close()

    def close_if_mine(self) -> None:
        """Close ``self.fobj`` iff we opened it in the constructor"""
        if self.me_opened:
            self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_if_mine()
