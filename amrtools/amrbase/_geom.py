import logging

import numpy as np

import amrtools.api as api
from amrtools.amrbase._box import Box

log = logging.getLogger(__name__)

# coordinate system tags are carried through, never reinterpreted
coord_names = {0: 'cartesian', 1: 'cylindrical', 2: 'spherical'}


def fit_periodicity(periodicity, dim, fill=1):
    """periodicity flags cut or padded with `fill` to `dim` axes"""
    return (tuple(int(p) for p in periodicity) + (fill,) * dim)[:dim]


class Geometry:
    """geometry of one level: index domain, physical bounds, coordinate system and periodicity"""

    def __init__(self, domain: Box, prob_lo, prob_hi, coord=0, periodicity=None):
        self._domain = domain
        self._prob_lo = np.array(prob_lo, dtype=np.float64)
        self._prob_hi = np.array(prob_hi, dtype=np.float64)
        self._coord = int(coord)
        if periodicity is None:
            periodicity = (0,) * domain.dim
        self._periodicity = tuple(int(p) for p in periodicity)
        self.check()

    @property
    def dim(self):
        return self._domain.dim

    @property
    def domain(self):
        return self._domain

    @property
    def prob_lo(self):
        return self._prob_lo.copy()

    @property
    def prob_hi(self):
        return self._prob_hi.copy()

    @property
    def coord(self):
        return self._coord

    @property
    def coord_name(self):
        return coord_names.get(self._coord, 'unknown')

    @property
    def periodicity(self):
        return self._periodicity

    def is_periodic(self, axis):
        return self._periodicity[axis] == 1

    @property
    def cellsize(self):
        return (self._prob_hi - self._prob_lo) / self._domain.size

    def check(self):
        """raise InconsistentHierarchy if geometry is not valid"""
        dim = self._domain.dim
        if not (self._prob_lo.size == self._prob_hi.size == dim == len(self._periodicity)):
            api.error_stop(
                f"inconsistent geometry dimensions: domain {dim}, prob_lo {self._prob_lo.size}, "
                f"prob_hi {self._prob_hi.size}, periodicity {len(self._periodicity)}",
                api.InconsistentHierarchy,
            )
        if not self._domain.ok():
            api.error_stop(f"empty index domain {self._domain}", api.InconsistentHierarchy)
        if np.any(self._prob_hi <= self._prob_lo):
            api.error_stop(
                f"physical domain {self._prob_lo} {self._prob_hi} is empty", api.InconsistentHierarchy
            )
        if any(p not in (0, 1) for p in self._periodicity):
            api.error_stop(f"periodicity must be 0 or 1, got {self._periodicity}", api.InconsistentHierarchy)
        return True

    def isclose(self, other: "Geometry", rtol=1.0e-12):
        return (
            self._domain == other.domain
            and np.allclose(self._prob_lo, other.prob_lo, rtol=rtol)
            and np.allclose(self._prob_hi, other.prob_hi, rtol=rtol)
            and self._coord == other.coord
            and self._periodicity == other.periodicity
        )

    def __str__(self):
        return (
            f"Geometry({self.dim}D {self.coord_name}, domain {self._domain}, "
            f"lo {self._prob_lo.tolist()}, hi {self._prob_hi.tolist()}, periodicity {self._periodicity})"
        )
