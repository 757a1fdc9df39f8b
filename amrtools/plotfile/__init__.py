# AMReX plotfile format
from amrtools.plotfile.reader import plotfileReader
from amrtools.plotfile.writer import plotfileWriter
