import logging

import numpy as np

import amrtools.api as api
from amrtools.amrbase._box import Box, BoxArray
from amrtools.amrbase._distrib import DistributionMapping

log = logging.getLogger(__name__)


def _readonly(array: np.ndarray):
    view = array.view()
    view.flags.writeable = False
    return view


class FieldArray:
    """field data of one level

    one numpy block (fab) per box of the BoxArray, of shape (*grownbox.size, ncomp):
    index order is (i, j[, k], component) and the block includes `ngrow` ghost cells
    on each side of each axis.

    Blocks are exposed read-only, writing is only possible through a BoxWriter
    delivered for the owner of the boxes.
    """

    def __init__(self, boxarray: BoxArray, varnames, ngrow=0, dtype=np.float64, fill=0.0, fabs=None):
        self._boxarray = boxarray
        self._varnames = list(varnames)
        dim = boxarray.dim if len(boxarray) else len(np.atleast_1d(ngrow))
        self._ngrow = tuple(int(n) for n in np.broadcast_to(np.asarray(ngrow, dtype=int), (dim,)))
        assert all(n >= 0 for n in self._ngrow), "ghost width must be non negative"
        if fabs is None:
            self._fabs = [
                np.full((*self.fabbox(i).size, self.ncomp), fill, dtype=dtype) for i in range(len(boxarray))
            ]
        else:
            self._fabs = list(fabs)
            if len(self._fabs) != len(boxarray):
                api.error_stop(
                    f"{len(self._fabs)} data blocks for {len(boxarray)} boxes", api.InconsistentHierarchy
                )
            for i, fab in enumerate(self._fabs):
                expected = (*self.fabbox(i).size, self.ncomp)
                if fab.shape != expected:
                    api.error_stop(
                        f"data block {i} has shape {fab.shape}, expected {expected}",
                        api.InconsistentHierarchy,
                    )

    @property
    def boxarray(self):
        return self._boxarray

    @property
    def varnames(self):
        return list(self._varnames)

    @property
    def ncomp(self):
        return len(self._varnames)

    @property
    def ngrow(self):
        return self._ngrow

    @property
    def nfab(self):
        return len(self._fabs)

    @property
    def dtype(self):
        return self._fabs[0].dtype if self._fabs else np.dtype(np.float64)

    def fabbox(self, i) -> Box:
        """box of block i, ghost cells included"""
        return self._boxarray[i].grow(self._ngrow)

    def fab(self, i):
        return _readonly(self._fabs[i])

    def valid(self, i):
        """interior (non ghost) part of block i"""
        return _readonly(self._fabs[i][self._boxarray[i].slices(origin=self.fabbox(i))])

    def component(self, i, name):
        return self.valid(i)[..., self._varnames.index(name)]

    def writer(self, distribution: DistributionMapping, unit: int):
        return BoxWriter(self, distribution, unit)

    def copy(self):
        return FieldArray(
            self._boxarray, self._varnames, self._ngrow, fabs=[fab.copy() for fab in self._fabs]
        )

    def minmax(self, i):
        """min and max of each component on the valid part of block i"""
        valid = self.valid(i).reshape(-1, self.ncomp)
        return valid.min(axis=0), valid.max(axis=0)

    def valid_equal(self, other: "FieldArray"):
        return (
            self._boxarray == other.boxarray
            and self._varnames == other.varnames
            and all(np.array_equal(self.valid(i), other.valid(i)) for i in range(self.nfab))
        )

    def __str__(self):
        return f"(FieldArray nfab={self.nfab} ncomp={self.ncomp} ngrow={self._ngrow})"


class BoxWriter:
    """write access to the blocks of the boxes owned by one unit, and only these"""

    def __init__(self, field: FieldArray, distribution: DistributionMapping, unit: int):
        distribution.check(field.nfab)
        self._field = field
        self._unit = unit
        self._boxes = distribution.owned_by(unit)

    @property
    def unit(self):
        return self._unit

    @property
    def boxes(self):
        return list(self._boxes)

    def _check_owned(self, i):
        if i not in self._boxes:
            api.error_stop(f"unit {self._unit} does not own box {i}", api.OwnershipViolation)

    def fab(self, i):
        self._check_owned(i)
        return self._field._fabs[i]

    def valid(self, i):
        self._check_owned(i)
        return self._field._fabs[i][self._field.boxarray[i].slices(origin=self._field.fabbox(i))]
