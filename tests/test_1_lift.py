import numpy as np
import pytest

import amrtools.api as api
from amrtools.amrbase import Box, BoxArray, Geometry
from amrtools.lift import check_liftable, lift, lift_boxarray, lift_geometry


@pytest.fixture
def geom2d():
    return Geometry(Box((0, 0), (7, 3)), (0.0, -1.0), (2.0, 1.0), coord=1, periodicity=(1, 0))


@pytest.mark.parametrize("nz", [0, -1, 2.0, True, "3"])
def test_invalid_thickness(geom2d, nz):
    with pytest.raises(api.InvalidThickness):
        check_liftable(geom2d, nz)
    with pytest.raises(api.InvalidThickness):
        lift(geom2d, BoxArray([geom2d.domain]), nz)


def test_already_3d():
    geom = Geometry(Box((0, 0, 0), (3, 3, 3)), (0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
    with pytest.raises(api.AlreadyThreeDimensional):
        lift_geometry(geom, 2)


def test_lift_geometry(geom2d):
    geom = lift_geometry(geom2d, 4, zperiodic=0)
    assert geom.dim == 3
    assert geom.domain == Box((0, 0, 0), (7, 3, 3))
    assert np.allclose(geom.prob_lo, [0.0, -1.0, 0.0])
    assert np.allclose(geom.prob_hi, [2.0, 1.0, 1.0])
    assert np.allclose(geom.cellsize, [0.25, 0.5, 0.25])
    assert geom.periodicity == (1, 0, 0)
    assert geom.coord == 1
    # source is left unchanged
    assert geom2d.dim == 2


def test_lift_geometry_dz(geom2d):
    geom = lift_geometry(geom2d, 1, dz=0.1)
    assert np.isclose(geom.prob_hi[2], 0.1)
    assert geom.periodicity == (1, 0, 1)


@pytest.mark.parametrize("nz", [1, 2, 3, 7, 16])
def test_lift_volume_and_disjointness(nz):
    ba = BoxArray([Box((0, 0), (3, 3)), Box((4, 0), (7, 5)), Box((0, 4), (3, 5))])
    lifted = lift_boxarray(ba, nz)
    assert lifted.numpts == ba.numpts * nz
    assert lifted.is_disjoint()
    assert all(max(b.size) <= max(4, nz) for b in lifted)
    assert all(b.length(0) <= 4 and b.length(1) <= 4 and b.length(2) <= nz for b in lifted)
    assert all(b.lo[2] >= 0 and b.hi[2] <= nz - 1 for b in lifted)


def test_lift_boxarray_retiling():
    ba = BoxArray([Box((0, 0), (3, 3)), Box((4, 0), (11, 3))])
    lifted = lift_boxarray(ba, 2)
    # second box is split along x to the extents of the first one
    assert list(lifted) == [
        Box((0, 0, 0), (3, 3, 1)),
        Box((4, 0, 0), (7, 3, 1)),
        Box((8, 0, 0), (11, 3, 1)),
    ]
    assert len(lift_boxarray(ba, 2, max_extent=False)) == 2
    assert len(lift_boxarray(ba, 2, max_extent=(2, 4, 1))) == 12


def test_lift(geom2d):
    ba = BoxArray([Box((0, 0), (3, 3)), Box((4, 0), (7, 3))])
    geom, lifted = lift(geom2d, ba, 3)
    assert geom.domain.contains(lifted.minimal_box())
    assert lifted.numpts == geom.domain.numpts
