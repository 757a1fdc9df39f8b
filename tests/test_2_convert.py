import numpy as np
import pytest

import amrtools.api as api
from amrtools.amrbase import Box, BoxArray, DistributionMapping, FieldArray, Geometry, assemble
from amrtools.lift import extrude_hierarchy, pseudo3d_hierarchy


def test_extrude_single_box(hier_single):
    """one 4x4 box with 2 components, periodic in-plane, extruded over 2 cells"""
    hier3d = extrude_hierarchy(hier_single, 2)
    assert hier3d.nlevels == 1
    assert hier3d.dim == 3
    assert hier3d.varnames == ['density', 'pressure']
    level = hier3d[0]
    assert level.geometry.domain == Box((0, 0, 0), (3, 3, 1))
    assert level.geometry.periodicity == (1, 1, 1)
    assert level.boxarray.minimal_box() == Box((0, 0, 0), (3, 3, 1))
    assert level.boxarray.numpts == 4 * 4 * 2
    source = hier_single[0].field.valid(0)
    for i, box in enumerate(level.boxarray):
        valid = level.field.valid(i)
        for k in range(box.length(2)):
            assert np.array_equal(valid[:, :, k, :], source[box.slices()[:2]])


@pytest.mark.parametrize("nz", [1, 3, 8])
def test_extrude_properties(hier_multibox, nz):
    hier3d = extrude_hierarchy(hier_multibox, nz, zperiodic=0)
    level0 = hier_multibox[0]
    level = hier3d[0]
    assert hier3d.nlevels == 1
    assert hier3d.time == hier_multibox.time
    assert hier3d.level_steps == [40]
    assert hier3d.ref_ratios == []
    assert level.boxarray.numpts == nz * level0.boxarray.numpts
    assert level.boxarray.is_disjoint()
    assert level.geometry.periodicity == (1, 0, 0)
    assert np.allclose(level.geometry.prob_hi, [1.0, 2.0, nz * 0.25])
    for i, box in enumerate(level.boxarray):
        for j, inter in level0.boxarray.intersections(box.project(2)):
            expected = level0.field.valid(j)[inter.slices(origin=level0.boxarray[j])]
            sx, sy = inter.slices(origin=box.project(2))
            for k in range(box.length(2)):
                assert level.field.valid(i)[sx, sy, k, :].tobytes() == expected.tobytes()


def test_extrude_distribution(hier_multibox):
    # same number of boxes: owners are kept
    hier3d = extrude_hierarchy(hier_multibox, 4)
    assert hier3d[0].distribution == hier_multibox[0].distribution
    # re-tiled: owners are spread over the same units
    hier3d = extrude_hierarchy(hier_multibox, 10, max_extent=(4, 4, 4))
    assert len(hier3d[0].boxarray) == 12
    assert hier3d[0].distribution.units() == [0, 1]


def test_extrude_drops_finer_levels(hier_twolevel):
    hier3d = extrude_hierarchy(hier_twolevel, 3)
    assert hier3d.nlevels == 1
    assert hier3d[0].geometry.domain == Box((0, 0, 0), (7, 7, 2))
    assert hier3d.level_steps == [10]


def test_extrude_nworkers(hier_twolevel):
    serial = extrude_hierarchy(hier_twolevel, 6)
    threaded = extrude_hierarchy(hier_twolevel, 6, nworkers=2)
    assert threaded[0].field.valid_equal(serial[0].field)


def test_extrude_source_unchanged(hier_multibox):
    before = hier_multibox[0].field.copy()
    extrude_hierarchy(hier_multibox, 3)
    assert hier_multibox.dim == 2
    assert hier_multibox[0].field.valid_equal(before)


@pytest.mark.parametrize("nz", [0, -1])
def test_extrude_invalid_thickness(hier_single, nz):
    with pytest.raises(api.InvalidThickness):
        extrude_hierarchy(hier_single, nz)


def test_already_3d(hier_single, hier_twolevel):
    hier3d = extrude_hierarchy(hier_single, 2)
    with pytest.raises(api.AlreadyThreeDimensional):
        extrude_hierarchy(hier3d, 2)
    with pytest.raises(api.AlreadyThreeDimensional):
        pseudo3d_hierarchy(pseudo3d_hierarchy(hier_twolevel))


def test_pseudo3d_twolevel(hier_twolevel):
    """two levels with ratio 2, each level lifted to one cell thickness"""
    hier3d = pseudo3d_hierarchy(hier_twolevel)
    assert hier3d.nlevels == 2
    assert hier3d.ref_ratios == [(2, 2, 1)]
    assert hier3d.level_steps == hier_twolevel.level_steps
    assert hier3d.varnames == hier_twolevel.varnames
    assert hier3d.time == hier_twolevel.time
    dz = hier_twolevel[0].geometry.cellsize[0]
    for level, source in zip(hier3d, hier_twolevel):
        assert level.geometry.domain.length(2) == 1
        assert np.isclose(level.geometry.prob_hi[2], dz)
        assert level.distribution == source.distribution
        assert [b.project(2) for b in level.boxarray] == list(source.boxarray)
        for i in range(level.nbox):
            assert level.boxarray[i].length(2) == 1
            assert np.array_equal(level.field.fab(i)[:, :, 0, :], source.field.fab(i))


def test_pseudo3d_multibox(hier_multibox):
    hier3d = pseudo3d_hierarchy(hier_multibox, zperiodic=0)
    level = hier3d[0]
    assert level.geometry.periodicity == (1, 0, 0)
    assert level.field.ngrow == (1, 1, 0)
    assert level.boxarray.is_disjoint()
    for i in range(level.nbox):
        flat = level.field.valid(i).reshape(hier_multibox[0].field.valid(i).shape)
        assert np.array_equal(flat, hier_multibox[0].field.valid(i))


def test_pseudo3d_three_levels():
    varnames = ['a']
    domains = [Box((0, 0), (3, 3)), Box((0, 0), (7, 7)), Box((0, 0), (31, 31))]
    boxes = [[Box((0, 0), (3, 3))], [Box((2, 2), (5, 5))], [Box((8, 8), (15, 15)), Box((16, 8), (23, 15))]]
    geoms = [Geometry(d, (0.0, 0.0), (4.0, 4.0)) for d in domains]
    bas = [BoxArray(b) for b in boxes]
    dmaps = [DistributionMapping.round_robin(len(ba)) for ba in bas]
    fields = [FieldArray(ba, varnames, fill=float(lev)) for lev, ba in enumerate(bas)]
    hier = assemble(geoms, bas, dmaps, fields, 0.0, [1, 2, 8], [(2, 2), (4, 4)], varnames)
    hier3d = pseudo3d_hierarchy(hier)
    assert hier3d.ref_ratios == [(2, 2, 1), (4, 4, 1)]
    assert [level.geometry.domain.hi[2] for level in hier3d] == [0, 0, 0]
    assert all(np.isclose(level.geometry.prob_hi[2], 1.0) for level in hier3d)
    assert all(np.all(level.field.valid(0) == lev) for lev, level in enumerate(hier3d))
