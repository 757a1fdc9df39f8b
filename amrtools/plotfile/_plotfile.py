"""common definitions of AMReX plotfile directories

A plotfile is a directory::

    plt00010/Header              text header (HyperCLaw-V1.1)
    plt00010/Level_0/Cell_H      per level multifab header (VisMF)
    plt00010/Level_0/Cell_D_00000  binary data, one FAB per box

"""
import logging
import re
import sys

import numpy as np

import amrtools.api as api
from amrtools.amrbase import Box

log = logging.getLogger(__name__)

plotfile_version = "HyperCLaw-V1.1"
vismf_version = 1
level_prefix = "Level_"
multifab_prefix = "Cell"

# IEEE formats of AMReX RealDescriptor
_ieee_format = {
    8: "(8, (64 11 52 0 1 12 0 1023))",
    4: "(8, (32 8 23 0 1 9 0 127))",
}

_fab_pattern = re.compile(
    r"FAB\s*\(\(\d+,\s*\(([\d\s]+)\)\),\((\d+),\s*\(([\d\s]+)\)\)\)"
    r"(\(\([-\d,\s]+\)\s*\([-\d,\s]+\)\s*\([-\d,\s]+\)\))\s*(\d+)"
)


def level_dir(lev: int):
    return f"{level_prefix}{lev}"


def data_filename(ifile: int = 0):
    return f"{multifab_prefix}_D_{ifile:05d}"


def parse_intvect(string: str):
    """parse `2` or `(2,2)` as a tuple of int"""
    string = string.strip()
    if string.startswith('('):
        return tuple(int(v) for v in string.strip('()').split(','))
    return (int(string),)


def real_descriptor(dtype):
    """AMReX RealDescriptor string of a numpy float dtype"""
    dtype = np.dtype(dtype)
    if dtype.kind != 'f' or dtype.itemsize not in _ieee_format:
        api.error_stop(f"unsupported data type {dtype} for plotfile", api.DestinationWriteFailure)
    order = range(1, dtype.itemsize + 1)
    if dtype.byteorder == '>' or (dtype.byteorder == '=' and sys.byteorder == 'big'):
        order = reversed(order)
    return f"({_ieee_format[dtype.itemsize]},({dtype.itemsize}, ({' '.join(map(str, order))})))"


def fab_header(box: Box, ncomp: int, dtype):
    return f"FAB {real_descriptor(dtype)}{box} {ncomp}\n"


def parse_fab_header(line: str):
    """parse FAB header line

    Returns:
        (Box, int, np.dtype): box of data (ghost cells included), number of components, data type
    """
    match = _fab_pattern.match(line.strip())
    if match is None:
        api.error_stop(f"unable to parse FAB header {line!r}", api.SourceReadFailure)
    nbytes = int(match.group(2))
    order = [int(i) for i in match.group(3).split()]
    if nbytes not in _ieee_format or sorted(order) != list(range(1, nbytes + 1)):
        api.error_stop(f"unsupported real descriptor in {line!r}", api.SourceReadFailure)
    if order == list(range(1, nbytes + 1)):
        endian = '<'
    elif order == list(range(nbytes, 0, -1)):
        endian = '>'
    else:
        api.error_stop(f"unsupported byte order {order}", api.SourceReadFailure)
    box = Box.from_string(match.group(4))
    return box, int(match.group(5)), np.dtype(f"{endian}f{nbytes}")
