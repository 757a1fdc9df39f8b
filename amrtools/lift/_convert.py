import logging

from amrtools.amrbase import DistributionMapping, Hierarchy, assemble
from amrtools.lift._lift import check_liftable, lift
from amrtools.lift._replicate import extrude, pseudo_replicate

log = logging.getLogger(__name__)


def extrude_hierarchy(hierarchy: Hierarchy, nz: int, zperiodic=1, max_extent=None, nworkers=1) -> Hierarchy:
    """flatten hierarchy to its level 0 and extrude it over nz cells along a new z axis

    Args:
        hierarchy (Hierarchy): 2-D source, left unchanged
        nz (int): number of cells along z
        zperiodic (int, optional): periodicity of z axis. Defaults to 1.
        max_extent (tuple, optional): bound of lifted boxes. Defaults to the first box extents and nz.
        nworkers (int, optional): number of threads for replication. Defaults to 1.

    Returns:
        Hierarchy: one level 3-D hierarchy
    """
    level0 = hierarchy[0]
    check_liftable(level0.geometry, nz)
    if hierarchy.nlevels > 1:
        log.info(f"  only level 0 is extruded, {hierarchy.nlevels - 1} finer level(s) dropped")
    geom3d, ba3d = lift(level0.geometry, level0.boxarray, nz, zperiodic=zperiodic, max_extent=max_extent)
    if len(ba3d) == level0.nbox:
        dmap = DistributionMapping(level0.distribution.owners)
    else:
        nunits = max(level0.distribution.nunits, 1)
        log.info(f"  {level0.nbox} boxes re-tiled to {len(ba3d)}, owners distributed over {nunits} unit(s)")
        dmap = DistributionMapping.round_robin(len(ba3d), nunits)
    log.info(f"  level 0: extrude {level0.boxarray.numpts} cells over nz={nz}, {ba3d.numpts} total cells")
    field = extrude(level0.field, ba3d, dmap, nz, nworkers=nworkers)
    return assemble(
        [geom3d],
        [ba3d],
        [dmap],
        [field],
        hierarchy.time,
        [level0.step],
        [],
        hierarchy.varnames,
    )


def pseudo3d_hierarchy(hierarchy: Hierarchy, zperiodic=1, nworkers=1) -> Hierarchy:
    """lift every level of hierarchy to one cell thick 3-D levels

    All levels share the same z physical range, one level-0 cell size along x,
    and the refinement ratio along z is 1.
    """
    dz = hierarchy[0].geometry.cellsize[0]
    geometries, boxarrays, dmaps, fields = [], [], [], []
    for lev, level in enumerate(hierarchy):
        log.info(f"  level {lev}: {level.nbox} boxes, {level.boxarray.numpts} cells")
        geom3d, ba3d = lift(level.geometry, level.boxarray, 1, zperiodic=zperiodic, max_extent=False, dz=dz)
        dmap = DistributionMapping(level.distribution.owners)
        geometries.append(geom3d)
        boxarrays.append(ba3d)
        dmaps.append(dmap)
        fields.append(pseudo_replicate(level.field, ba3d, dmap, nworkers=nworkers))
    return assemble(
        geometries,
        boxarrays,
        dmaps,
        fields,
        hierarchy.time,
        hierarchy.level_steps,
        [(*ratio, 1) for ratio in hierarchy.ref_ratios],
        hierarchy.varnames,
    )
