# emacs: -*- mode: python-mode; py-indent-offset: 4; indent-tabs-mode: nil -*-
# vi: set ft=python sts=4 ts=4 sw=4 et:
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
#
#   See COPYING file distributed along with the trkio package for the
#   copyright and license terms.
#
### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ### ##
"""Byte order codes shared by the header, reader and writer"""
import sys

sys_is_le = sys.byteorder == 'little'
native_code = sys_is_le and '<' or '>'
swapped_code = sys_is_le and '>' or '<'

_endian_aliases = (  # numpy code, aliases
    ('<', 'little', 'l', 'le', 'L', 'LE'),
    ('>', 'big', 'BIG', 'b', 'be', 'B', 'BE'),
    (native_code, 'native', 'n', 'N', '=', '|', 'i', 'I'),
    (swapped_code, 'swapped', 's', 'S', '!'))

#: map from any endian alias to the numpy byte order character
endian_codes = {}
for _codes in _endian_aliases:
    for _alias in _codes:
        endian_codes[_alias] = _codes[0]
del _codes, _alias


def endian_label(code):
    """ Human readable name for endian `code`

    >>> endian_label('>')
    'big'
    >>> endian_label('le')
    'little'
    """
    return 'little' if endian_codes[code] == '<' else 'big'
