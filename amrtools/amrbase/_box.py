import logging
import re

import numpy as np

import amrtools.api as api

log = logging.getLogger(__name__)

_box_pattern = re.compile(r"\(\(([-\d,\s]+)\)\s*\(([-\d,\s]+)\)\s*\(([-\d,\s]+)\)\)")

# default priority of re-tiling: new axis first, then y, then x
default_tiling_priority = (2, 1, 0)


def _intvect(values):
    return tuple(int(v) for v in values)


def _intvect_str(values):
    return "(" + ",".join(str(v) for v in values) + ")"


class Box:
    """cell-centered box of integer index space, `lo` and `hi` are both included"""

    def __init__(self, lo, hi):
        self._lo = _intvect(lo)
        self._hi = _intvect(hi)
        assert len(self._lo) == len(self._hi), "lo and hi must have the same dimension"

    @classmethod
    def from_string(cls, string: str):
        """parse AMReX form ((lo) (hi) (type))"""
        match = _box_pattern.search(string)
        if match is None:
            api.error_stop(f"unable to parse box from {string!r}", api.SourceReadFailure)
        lo, hi = (_intvect(match.group(i).split(',')) for i in (1, 2))
        return cls(lo, hi)

    @property
    def lo(self):
        return self._lo

    @property
    def hi(self):
        return self._hi

    @property
    def dim(self):
        return len(self._lo)

    @property
    def size(self):
        """number of cells along each axis"""
        return np.array(self._hi) - np.array(self._lo) + 1

    def length(self, axis):
        return self._hi[axis] - self._lo[axis] + 1

    @property
    def numpts(self):
        return int(np.prod(self.size)) if self.ok() else 0

    def ok(self):
        return all(h >= l for l, h in zip(self._lo, self._hi))

    def grow(self, ngrow):
        ng = np.broadcast_to(np.asarray(ngrow, dtype=int), (self.dim,))
        return Box(np.array(self._lo) - ng, np.array(self._hi) + ng)

    def intersection(self, other: "Box"):
        """returns intersected box or None if empty"""
        assert self.dim == other.dim
        lo = np.maximum(self._lo, other.lo)
        hi = np.minimum(self._hi, other.hi)
        return Box(lo, hi) if np.all(hi >= lo) else None

    def intersects(self, other: "Box"):
        return self.intersection(other) is not None

    def contains(self, other: "Box"):
        return all(sl <= ol for sl, ol in zip(self._lo, other.lo)) and all(
            sh >= oh for sh, oh in zip(self._hi, other.hi)
        )

    def lift(self, nz: int):
        """append a new last axis spanning [0, nz-1]"""
        return Box(self._lo + (0,), self._hi + (nz - 1,))

    def project(self, dim: int):
        """keep the first `dim` axes"""
        return Box(self._lo[:dim], self._hi[:dim])

    def refine(self, ratio):
        r = np.broadcast_to(np.asarray(ratio, dtype=int), (self.dim,))
        return Box(np.array(self._lo) * r, (np.array(self._hi) + 1) * r - 1)

    def slices(self, origin: "Box" = None):
        """numpy slices of this box in an array whose first cell is origin.lo"""
        offset = (0,) * self.dim if origin is None else origin.lo
        return tuple(slice(l - o, h - o + 1) for l, h, o in zip(self._lo, self._hi, offset))

    def __eq__(self, other):
        return isinstance(other, Box) and self._lo == other.lo and self._hi == other.hi

    def __hash__(self):
        return hash((self._lo, self._hi))

    def __repr__(self):
        return f"Box({self._lo}, {self._hi})"

    def __str__(self):
        return f"({_intvect_str(self._lo)} {_intvect_str(self._hi)} {_intvect_str((0,) * self.dim)})"


def _chop(box: Box, axis: int, maxlen: int):
    """split box along axis in balanced chunks of at most maxlen cells"""
    length = box.length(axis)
    if length <= maxlen:
        return [box]
    nchunk = -(-length // maxlen)
    base, extra = divmod(length, nchunk)
    chunks = []
    start = box.lo[axis]
    for i in range(nchunk):
        n = base + 1 if i < extra else base
        lo, hi = list(box.lo), list(box.hi)
        lo[axis], hi[axis] = start, start + n - 1
        chunks.append(Box(lo, hi))
        start += n
    return chunks


def tile_box(box: Box, max_extent, priority=default_tiling_priority):
    """split box so that no sub-box exceeds max_extent along any axis

    Args:
        box (Box): box to split
        max_extent (sequence of int): maximum number of cells per axis
        priority (tuple, optional): splitting order of axes, the first one is outermost in
            the resulting order. Axes beyond the box dimension are ignored.

    Returns:
        list of Box: ordered, disjoint sub-boxes whose union is box
    """
    max_extent = _intvect(max_extent)
    assert len(max_extent) == box.dim, "max_extent must have the box dimension"
    assert all(m > 0 for m in max_extent), "max_extent must be strictly positive"
    axes = [a for a in priority if a < box.dim]
    axes += [a for a in range(box.dim) if a not in axes]
    pieces = [box]
    for axis in axes:
        pieces = [chunk for piece in pieces for chunk in _chop(piece, axis, max_extent[axis])]
    return pieces


class BoxArray:
    """ordered list of disjoint boxes covering one level"""

    def __init__(self, boxes=()):
        self._boxes = list(boxes)
        if self._boxes:
            dim = self._boxes[0].dim
            assert all(b.dim == dim for b in self._boxes), "all boxes must have the same dimension"

    @classmethod
    def from_arrays(cls, lo: np.ndarray, hi: np.ndarray):
        return cls(Box(l, h) for l, h in zip(lo, hi))

    def __len__(self):
        return len(self._boxes)

    def __getitem__(self, i):
        return self._boxes[i]

    def __iter__(self):
        return iter(self._boxes)

    def __eq__(self, other):
        return isinstance(other, BoxArray) and self._boxes == list(other)

    @property
    def dim(self):
        return self._boxes[0].dim if self._boxes else None

    @property
    def numpts(self):
        return sum(b.numpts for b in self._boxes)

    def lo_array(self):
        return np.array([b.lo for b in self._boxes], dtype=int).reshape(len(self), -1)

    def hi_array(self):
        return np.array([b.hi for b in self._boxes], dtype=int).reshape(len(self), -1)

    def minimal_box(self):
        return Box(self.lo_array().min(axis=0), self.hi_array().max(axis=0))

    def overlaps(self):
        """list of (i, j), i < j, of intersecting boxes"""
        lo, hi = self.lo_array(), self.hi_array()
        pairs = []
        for i in range(len(self) - 1):
            inter = np.all(
                np.minimum(hi[i], hi[i + 1 :]) >= np.maximum(lo[i], lo[i + 1 :]),
                axis=1,
            )
            pairs.extend((i, i + 1 + int(j)) for j in np.nonzero(inter)[0])
        return pairs

    def is_disjoint(self):
        return not self.overlaps()

    def intersections(self, box: Box):
        """list of (index, intersected box) of boxes intersecting box"""
        result = []
        for i, b in enumerate(self._boxes):
            inter = b.intersection(box)
            if inter is not None:
                result.append((i, inter))
        return result

    def max_size(self, max_extent, priority=default_tiling_priority):
        """re-tile every box with tile_box, keeping box order"""
        return BoxArray(piece for b in self._boxes for piece in tile_box(b, max_extent, priority))

    def lifted(self, nz: int):
        return BoxArray(b.lift(nz) for b in self._boxes)

    def refine(self, ratio):
        return BoxArray(b.refine(ratio) for b in self._boxes)

    def __str__(self):
        return f"(BoxArray nbox={len(self)} npts={self.numpts})"
