"""fill lifted 3-D field arrays from 2-D source field arrays

Both strategies work box by box, each output box being written by its owner only
(through a BoxWriter), so that boxes may be processed in any order or concurrently.
"""
from concurrent.futures import ThreadPoolExecutor
import logging

import amrtools.api as api
from amrtools.amrbase import BoxArray, BoxWriter, DistributionMapping, FieldArray

log = logging.getLogger(__name__)


class _Replication:
    """base class of replication strategies"""

    def __init__(self, source: FieldArray):
        if len(source.ngrow) != 2:
            api.error_stop(f"source data must be 2-D, ghost width is {source.ngrow}", api.AlreadyThreeDimensional)
        self._source = source

    @property
    def source(self):
        return self._source

    def ngrow(self):
        raise NotImplementedError

    def allocate(self, partition: BoxArray) -> FieldArray:
        return FieldArray(partition, self._source.varnames, self.ngrow(), dtype=self._source.dtype)

    def fill(self, writer: BoxWriter, i: int, box):
        raise NotImplementedError

    def _fill_unit(self, field: FieldArray, distribution: DistributionMapping, unit: int):
        writer = field.writer(distribution, unit)
        for i in writer.boxes:
            self.fill(writer, i, field.boxarray[i])
        return len(writer.boxes)

    def run(self, partition: BoxArray, distribution: DistributionMapping, nworkers=1) -> FieldArray:
        """allocate a fresh field array on partition and fill every box

        Args:
            partition (BoxArray): lifted 3-D boxes
            distribution (DistributionMapping): owners of lifted boxes
            nworkers (int, optional): number of threads processing owner units. Defaults to 1.
        """
        field = self.allocate(partition)
        units = distribution.units()
        if nworkers > 1 and len(units) > 1:
            with ThreadPoolExecutor(max_workers=nworkers) as executor:
                nfilled = sum(executor.map(lambda unit: self._fill_unit(field, distribution, unit), units))
        else:
            nfilled = sum(self._fill_unit(field, distribution, unit) for unit in units)
        log.debug(f"  {self.__class__.__name__}: {nfilled} boxes filled by {len(units)} units")
        return field


class Extrude(_Replication):
    """copy the 2-D data of each lifted column into every layer along z

    ghost cells of the output are left to their allocation value
    """

    def __init__(self, source: FieldArray, nz: int):
        super().__init__(source)
        self._nz = nz

    @property
    def nz(self):
        return self._nz

    def ngrow(self):
        return (*self._source.ngrow, max(self._source.ngrow))

    def fill(self, writer: BoxWriter, i: int, box):
        dest = writer.valid(i)
        inplane = box.project(2)
        srcboxes = self._source.boxarray
        for j, inter in srcboxes.intersections(inplane):
            sx, sy = inter.slices(origin=inplane)
            slab = self._source.valid(j)[inter.slices(origin=srcboxes[j])]
            dest[sx, sy, :, :] = slab[:, :, None, :]


class PseudoReplicate(_Replication):
    """copy each 2-D block, ghost cells included, into the matching lifted block of thickness one"""

    def ngrow(self):
        return (*self._source.ngrow, 0)

    def allocate(self, partition: BoxArray) -> FieldArray:
        if len(partition) != self._source.nfab:
            api.error_stop(
                f"{len(partition)} lifted boxes for {self._source.nfab} source boxes", api.InconsistentHierarchy
            )
        for src, box in zip(self._source.boxarray, partition):
            if box.length(2) != 1 or box.project(2) != src:
                api.error_stop(f"lifted box {box} is not the one cell thick {src}", api.InconsistentHierarchy)
        return super().allocate(partition)

    def fill(self, writer: BoxWriter, i: int, box):
        writer.fab(i)[:, :, 0, :] = self._source.fab(i)


def extrude(source: FieldArray, partition: BoxArray, distribution: DistributionMapping, nz: int, nworkers=1):
    return Extrude(source, nz).run(partition, distribution, nworkers=nworkers)


def pseudo_replicate(source: FieldArray, partition: BoxArray, distribution: DistributionMapping, nworkers=1):
    return PseudoReplicate(source).run(partition, distribution, nworkers=nworkers)
