from pathlib import Path
import shutil

import numpy as np

from amrtools.amrbase import Box, BoxArray, DistributionMapping, FieldArray, Geometry, assemble
from amrtools.plotfile import plotfileReader, plotfileWriter
from amrtools.lift import extrude_hierarchy

_builddir = Path("./tests/build/")

filename = "plt00010"

# 2D source plotfile, periodic along x only
geom = Geometry(Box((0, 0), (31, 15)), (0.0, 0.0), (2.0, 1.0), periodicity=(1, 0))
ba = BoxArray([Box((0, 0), (15, 15)), Box((16, 0), (31, 15))])
dmap = DistributionMapping.round_robin(len(ba), 2)
field = FieldArray(ba, ['density'])
for unit in dmap.units():
    writer = field.writer(dmap, unit)
    for i in writer.boxes:
        box = ba[i]
        x = geom.prob_lo[0] + (np.arange(box.lo[0], box.hi[0] + 1) + 0.5) * geom.cellsize[0]
        writer.valid(i)[..., 0] = (1.0 + 0.1 * np.sin(np.pi * x))[:, None]
hier = assemble([geom], [ba], [dmap], [field], 0.0, [10], [], ['density'])

_builddir.mkdir(parents=True, exist_ok=True)
for path in (_builddir / filename, _builddir / (filename + "_3D")):
    shutil.rmtree(path, ignore_errors=True)
plotfileWriter(hier).write_data(_builddir / filename)

r = plotfileReader(_builddir / filename)
r.read_data()
r.printinfo()
hier = r.export_hierarchy()
hier.printinfo()
hier3d = extrude_hierarchy(hier, 16, zperiodic=1, nworkers=4)
hier3d.printinfo()
plotfileWriter(hier3d).write_data(_builddir / (filename + "_3D"))
print("done")
