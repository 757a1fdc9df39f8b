# coding: utf8
import pytest
from pathlib import Path

import numpy as np

from amrtools.amrbase import Box, BoxArray, DistributionMapping, FieldArray, Geometry, assemble


def cell_value(c, *index):
    """distinct value for component c at global index (i, j[, k])"""
    return 1000.0 * (c + 1) + sum(i * 100**d for d, i in enumerate(index))


def indexed_field(boxarray, varnames, ngrow=0, distribution=None):
    """field array filled with cell_value, ghost cells included"""
    field = FieldArray(boxarray, varnames, ngrow)
    if distribution is None:
        distribution = DistributionMapping.round_robin(len(boxarray))
    for unit in distribution.units():
        writer = field.writer(distribution, unit)
        for i in writer.boxes:
            box = field.fabbox(i)
            index = np.meshgrid(*(np.arange(l, h + 1) for l, h in zip(box.lo, box.hi)), indexing='ij')
            for c in range(field.ncomp):
                writer.fab(i)[..., c] = cell_value(c, *index)
    return field


@pytest.fixture(scope='session')
def builddir():
    p = Path("./tests/build")
    p.mkdir(exist_ok=True)
    return p


@pytest.fixture
def hier_single():
    """one level, one 4x4 box, 2 components, periodic along x and y"""
    domain = Box((0, 0), (3, 3))
    geom = Geometry(domain, (0.0, 0.0), (1.0, 1.0), periodicity=(1, 1))
    ba = BoxArray([domain])
    dmap = DistributionMapping.round_robin(1)
    field = indexed_field(ba, ['density', 'pressure'])
    return assemble([geom], [ba], [dmap], [field], 0.5, [12], [], ['density', 'pressure'])


@pytest.fixture
def hier_multibox():
    """one level, four 4x4 boxes with one ghost cell, owned by two units"""
    domain = Box((0, 0), (7, 7))
    geom = Geometry(domain, (-1.0, 0.0), (1.0, 2.0), periodicity=(1, 0))
    ba = BoxArray(Box((i, j), (i + 3, j + 3)) for j in (0, 4) for i in (0, 4))
    dmap = DistributionMapping.round_robin(4, 2)
    varnames = ['rho', 'u', 'v']
    field = indexed_field(ba, varnames, ngrow=1, distribution=dmap)
    return assemble([geom], [ba], [dmap], [field], 2.0, [40], [], varnames)


@pytest.fixture
def hier_twolevel():
    """two levels, refinement ratio 2, the fine level covers the center of the domain"""
    varnames = ['density', 'temperature']
    geom0 = Geometry(Box((0, 0), (7, 7)), (0.0, 0.0), (1.0, 1.0), periodicity=(1, 1))
    geom1 = Geometry(Box((0, 0), (15, 15)), (0.0, 0.0), (1.0, 1.0), periodicity=(1, 1))
    ba0 = BoxArray([Box((0, 0), (3, 7)), Box((4, 0), (7, 7))])
    ba1 = BoxArray([Box((4, 4), (7, 11)), Box((8, 4), (11, 11))])
    dmap0 = DistributionMapping.round_robin(2, 2)
    dmap1 = DistributionMapping.round_robin(2, 2)
    field0 = indexed_field(ba0, varnames, ngrow=1, distribution=dmap0)
    field1 = indexed_field(ba1, varnames, ngrow=1, distribution=dmap1)
    return assemble(
        [geom0, geom1], [ba0, ba1], [dmap0, dmap1], [field0, field1], 1.5, [10, 20], [(2, 2)], varnames
    )
