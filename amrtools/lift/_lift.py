"""lift of a 2-D level (geometry and boxes) to a 3-D one with a synthetic third axis"""
import logging
import numbers

import amrtools.api as api
from amrtools.amrbase import BoxArray, Geometry

log = logging.getLogger(__name__)


def check_liftable(geometry: Geometry, nz):
    """raise if geometry cannot be lifted with nz cells along the new axis"""
    if isinstance(nz, bool) or not isinstance(nz, numbers.Integral) or nz <= 0:
        api.error_stop(f"thickness must be a strictly positive integer, got {nz!r}", api.InvalidThickness)
    if geometry.dim >= 3:
        api.error_stop(f"source is already {geometry.dim}-D", api.AlreadyThreeDimensional)
    if geometry.dim != 2:
        api.error_stop(f"only 2-D sources can be lifted, got {geometry.dim}-D")


def lift_geometry(geometry: Geometry, nz: int, zperiodic=1, dz=None) -> Geometry:
    """append a third axis of nz cells to geometry

    Args:
        geometry (Geometry): 2-D geometry
        nz (int): number of cells along the new axis
        zperiodic (int, optional): periodicity of the new axis. Defaults to 1.
        dz (float, optional): cell size along the new axis. Defaults to the cell size along x.

    Returns:
        Geometry: 3-D geometry with new axis index range [0, nz-1] and physical range [0, nz*dz]
    """
    check_liftable(geometry, nz)
    if dz is None:
        dz = geometry.cellsize[0]
    return Geometry(
        geometry.domain.lift(nz),
        [*geometry.prob_lo, 0.0],
        [*geometry.prob_hi, nz * dz],
        coord=geometry.coord,
        periodicity=(*geometry.periodicity, int(zperiodic)),
    )


def lifted_max_extent(partition: BoxArray, nz: int):
    """per-axis bound of lifted boxes: in-plane extents of the first source box, nz along z"""
    box0 = partition[0]
    return (box0.length(0), box0.length(1), nz)


def lift_boxarray(partition: BoxArray, nz: int, max_extent=None) -> BoxArray:
    """lift each box to span [0, nz-1] along z and re-tile to max_extent

    re-tiling is skipped if max_extent is False
    """
    lifted = partition.lifted(nz)
    if max_extent is False:
        return lifted
    if max_extent is None:
        max_extent = lifted_max_extent(partition, nz)
    return lifted.max_size(max_extent)


def lift(geometry: Geometry, partition: BoxArray, nz: int, zperiodic=1, max_extent=None, dz=None):
    """lift 2-D geometry and partition of one level to 3-D

    Returns:
        (Geometry, BoxArray): lifted geometry and lifted, re-tiled partition

    Raises:
        InvalidThickness: nz <= 0
        AlreadyThreeDimensional: geometry is already 3-D
    """
    geom3d = lift_geometry(geometry, nz, zperiodic=zperiodic, dz=dz)
    ba3d = lift_boxarray(partition, nz, max_extent=max_extent)
    log.debug(f"  lifted {len(partition)} boxes to {len(ba3d)} boxes, nz={nz}")
    return geom3d, ba3d
