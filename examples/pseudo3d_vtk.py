import numpy as np

from amrtools.amrbase import Box, BoxArray, DistributionMapping, FieldArray, Geometry, assemble
from amrtools.lift import pseudo3d_hierarchy
from amrtools.vtk import vtkWriter

# two level hierarchy with a refined center
geoms = [
    Geometry(Box((0, 0), (15, 15)), (0.0, 0.0), (1.0, 1.0), periodicity=(1, 1)),
    Geometry(Box((0, 0), (31, 31)), (0.0, 0.0), (1.0, 1.0), periodicity=(1, 1)),
]
bas = [BoxArray([Box((0, 0), (15, 7)), Box((0, 8), (15, 15))]), BoxArray([Box((8, 8), (23, 23))])]
dmaps = [DistributionMapping.round_robin(len(ba), 2) for ba in bas]
fields = []
for geom, ba, dmap in zip(geoms, bas, dmaps):
    field = FieldArray(ba, ['phi'])
    for unit in dmap.units():
        writer = field.writer(dmap, unit)
        for i in writer.boxes:
            box = ba[i]
            x = geom.prob_lo[0] + (np.arange(box.lo[0], box.hi[0] + 1) + 0.5) * geom.cellsize[0]
            y = geom.prob_lo[1] + (np.arange(box.lo[1], box.hi[1] + 1) + 0.5) * geom.cellsize[1]
            writer.valid(i)[..., 0] = np.sin(2 * np.pi * x)[:, None] * np.cos(2 * np.pi * y)[None, :]
    fields.append(field)
hier = assemble(geoms, bas, dmaps, fields, 0.0, [0, 0], [(2, 2)], ['phi'])

hier3d = pseudo3d_hierarchy(hier)
hier3d.printinfo()
vtkWriter(hier3d).write_data("phi_3D.vtm")
print("done")
