import logging

import numpy as np

import amrtools.api as api

log = logging.getLogger(__name__)


class DistributionMapping:
    """owner (compute unit) of each box of a BoxArray"""

    def __init__(self, owners):
        self._owners = np.array(owners, dtype=int).ravel()
        assert np.all(self._owners >= 0), "owners must be non negative"

    @classmethod
    def round_robin(cls, nboxes: int, nunits: int = 1):
        assert nunits > 0, "at least one unit is expected"
        return cls(np.arange(nboxes) % nunits)

    def __len__(self):
        return self._owners.size

    def __getitem__(self, i):
        return int(self._owners[i])

    def __eq__(self, other):
        return isinstance(other, DistributionMapping) and np.array_equal(self._owners, other.owners)

    @property
    def owners(self):
        return self._owners.copy()

    @property
    def nunits(self):
        return int(self._owners.max()) + 1 if self._owners.size else 0

    def units(self):
        return [int(u) for u in np.unique(self._owners)]

    def owned_by(self, unit: int):
        """index of boxes owned by unit"""
        return [int(i) for i in np.nonzero(self._owners == unit)[0]]

    def check(self, nboxes: int):
        if len(self) != nboxes:
            api.error_stop(
                f"owner assignment has {len(self)} entries for {nboxes} boxes", api.InconsistentHierarchy
            )
        return True

    def __str__(self):
        return f"(DistributionMapping nbox={len(self)} nunits={self.nunits})"
