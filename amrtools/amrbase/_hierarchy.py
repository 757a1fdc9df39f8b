import logging

import numpy as np

import amrtools.api as api
from amrtools.amrbase._box import BoxArray
from amrtools.amrbase._distrib import DistributionMapping
from amrtools.amrbase._fab import FieldArray
from amrtools.amrbase._geom import Geometry
from amrtools.utils.maths import minavgmax

log = logging.getLogger(__name__)


class Level:
    """one refinement level: geometry, boxes, owners, data and step counter"""

    def __init__(
        self,
        geometry: Geometry,
        boxarray: BoxArray,
        distribution: DistributionMapping,
        field: FieldArray,
        step: int = 0,
    ):
        self.geometry = geometry
        self.boxarray = boxarray
        self.distribution = distribution
        self.field = field
        self.step = int(step)

    @property
    def nbox(self):
        return len(self.boxarray)


class Hierarchy:
    """multi-level AMR hierarchy, level 0 is the coarsest

    built and checked by `assemble()`
    """

    def __init__(self, levels, time, ref_ratios, varnames):
        self._levels = list(levels)
        self._time = float(time)
        self._ref_ratios = [tuple(int(r) for r in ratio) for ratio in ref_ratios]
        self._varnames = list(varnames)

    def __len__(self):
        return len(self._levels)

    def __iter__(self):
        return iter(self._levels)

    def __getitem__(self, lev) -> Level:
        return self._levels[lev]

    @property
    def nlevels(self):
        return len(self._levels)

    @property
    def finest_level(self):
        return len(self._levels) - 1

    @property
    def dim(self):
        return self._levels[0].geometry.dim

    @property
    def time(self):
        return self._time

    @property
    def level_steps(self):
        return [level.step for level in self._levels]

    @property
    def ref_ratios(self):
        return list(self._ref_ratios)

    @property
    def varnames(self):
        return list(self._varnames)

    @property
    def ncomp(self):
        return len(self._varnames)

    def geometries(self):
        return [level.geometry for level in self._levels]

    def boxarrays(self):
        return [level.boxarray for level in self._levels]

    def distributions(self):
        return [level.distribution for level in self._levels]

    def fields(self):
        return [level.field for level in self._levels]

    def check(self):
        _check_levels(
            self.geometries(),
            self.boxarrays(),
            self.distributions(),
            self.fields(),
            self.level_steps,
            self._ref_ratios,
            self._varnames,
        )
        return True

    def printinfo(self):
        geom = self._levels[0].geometry
        log.info(f"dimension: {self.dim} ({geom.coord_name})")
        log.info(f"time: {self._time}")
        log.info(f"nlevels: {self.nlevels}")
        log.info(f"prob_lo: {geom.prob_lo.tolist()}")
        log.info(f"prob_hi: {geom.prob_hi.tolist()}")
        log.info(f"periodicity: {geom.periodicity}")
        log.info(f"ref_ratios: {self._ref_ratios}")
        log.info(f"components ({self.ncomp}):")
        for i, name in enumerate(self._varnames):
            log.info(f"  {i+1}.) {name}")
        for lev, level in enumerate(self._levels):
            log.info(
                f"level {lev}: domain {level.geometry.domain} step {level.step} "
                f"nbox {level.nbox} ncell {level.boxarray.numpts} ngrow {level.field.ngrow} "
                f"nunits {level.distribution.nunits}"
            )
            if level.nbox:
                sizes = np.array([b.numpts for b in level.boxarray])
                log.info("  box size min:avg:max = {:.0f}:{:.1f}:{:.0f}".format(*minavgmax(sizes)))


def _inconsistent(msg):
    api.error_stop(msg, api.InconsistentHierarchy)


def _check_levels(geometries, partitions, distributions, fields, level_steps, ref_ratios, varnames):
    nlevels = len(geometries)
    if nlevels == 0:
        _inconsistent("a hierarchy needs at least one level")
    for name, items in (
        ('partitions', partitions),
        ('owner assignments', distributions),
        ('field arrays', fields),
        ('level steps', level_steps),
    ):
        if len(items) != nlevels:
            _inconsistent(f"{len(items)} {name} for {nlevels} levels")
    if len(ref_ratios) != nlevels - 1:
        _inconsistent(f"{len(ref_ratios)} refinement ratios for {nlevels} levels")
    if len(set(varnames)) != len(varnames):
        _inconsistent(f"duplicated component names in {varnames}")
    dim = geometries[0].dim
    for lev, ratio in enumerate(ref_ratios):
        if len(ratio) != dim or any(r < 1 for r in ratio):
            _inconsistent(f"invalid refinement ratio {ratio} between levels {lev} and {lev+1}")
    for lev in range(nlevels):
        geom, ba, dm, field = geometries[lev], partitions[lev], distributions[lev], fields[lev]
        geom.check()
        if geom.dim != dim:
            _inconsistent(f"level {lev} has dimension {geom.dim} instead of {dim}")
        if len(ba) == 0:
            _inconsistent(f"level {lev} has no box")
        if ba.dim != dim:
            _inconsistent(f"boxes of level {lev} have dimension {ba.dim} instead of {dim}")
        if not all(geom.domain.contains(b) for b in ba):
            _inconsistent(f"some boxes of level {lev} are outside its domain {geom.domain}")
        overlaps = ba.overlaps()
        if overlaps:
            _inconsistent(f"overlapping boxes on level {lev}: {overlaps[:5]}")
        dm.check(len(ba))
        if field.boxarray != ba:
            _inconsistent(f"field array of level {lev} is not defined on the level boxes")
        if field.varnames != list(varnames):
            _inconsistent(f"components of level {lev} {field.varnames} differ from {list(varnames)}")
        if len(field.ngrow) != dim:
            _inconsistent(f"ghost width {field.ngrow} of level {lev} does not match dimension {dim}")
        if lev > 0:
            coarse = geometries[lev - 1]
            expected = coarse.domain.refine(ref_ratios[lev - 1])
            if geom.domain != expected:
                _inconsistent(
                    f"domain {geom.domain} of level {lev} is not the refined domain {expected} "
                    f"of level {lev-1}"
                )


def assemble(
    geometries, partitions, distributions, fields, time, level_steps, ref_ratios, varnames
) -> Hierarchy:
    """combine per-level geometry, boxes, owners and data in a checked Hierarchy

    Raises:
        InconsistentHierarchy: if level counts, ratio counts or component lists disagree
    """
    _check_levels(geometries, partitions, distributions, fields, level_steps, ref_ratios, varnames)
    levels = [
        Level(geom, ba, dm, field, step)
        for geom, ba, dm, field, step in zip(geometries, partitions, distributions, fields, level_steps)
    ]
    return Hierarchy(levels, time, ref_ratios, varnames)
