import logging
from pathlib import Path
import shutil

import numpy as np

import amrtools.api as api
from amrtools.amrbase import Hierarchy

try:
    import pyvista as pv

    importpyvista = True
except ImportError:  # pragma: no cover
    importpyvista = False

log = logging.getLogger(__name__)

if not importpyvista:  # pragma: no cover
    log.warning("pyvista missing or failing at import: VTK output will not be available.")


@api.fileformat_writer("VTK", '.vtm')
class vtkWriter:
    """writer of a hierarchy as a VTK multiblock: one block per level, one image per box
    (valid cells only, one cell data array per component)"""

    def __init__(self, hierarchy: Hierarchy):
        if not importpyvista:  # pragma: no cover
            api.error_stop("pyvista is needed to write VTK files", api.DestinationWriteFailure)
        self._hierarchy = hierarchy

    def box_image(self, lev: int, i: int):
        level = self._hierarchy[lev]
        box = level.boxarray[i]
        geom = level.geometry
        dim = geom.dim
        dx = geom.cellsize
        origin = geom.prob_lo + (np.array(box.lo) - np.array(geom.domain.lo)) * dx
        ncell = box.size
        image = pv.ImageData(
            dimensions=tuple(ncell + 1) + (1,) * (3 - dim),
            spacing=tuple(dx) + (1.0,) * (3 - dim),
            origin=tuple(origin) + (0.0,) * (3 - dim),
        )
        valid = level.field.valid(i)
        for c, name in enumerate(level.field.varnames):
            image.cell_data[name] = valid[..., c].ravel(order='F')
        image.cell_data['level'] = np.full(box.numpts, lev, dtype=np.int32)
        return image

    def multiblock(self):
        blocks = pv.MultiBlock()
        for lev, level in enumerate(self._hierarchy):
            levblock = pv.MultiBlock()
            for i in range(level.nbox):
                levblock.append(self.box_image(lev, i), f"box_{i}")
            blocks.append(levblock, f"level_{lev}")
        return blocks

    def write_data(self, filename):
        path = Path(filename)
        blockdir = path.with_suffix("")  # pyvista writes the block files there
        log.info(f"> VTK writer: {path}")
        for dest in (path, blockdir):
            if dest.exists():
                api.error_stop(f"{str(dest)!r} already exists", api.DestinationWriteFailure)
        try:
            self.multiblock().save(str(path))
        except (OSError, ValueError) as err:
            path.unlink(missing_ok=True)
            shutil.rmtree(blockdir, ignore_errors=True)
            raise api.DestinationWriteFailure(f"unable to write {str(path)!r}: {err}") from err
        return str(path)
