# vtk subpackage
from amrtools.vtk.writer import vtkWriter
