# hierarchy model subpackage
from amrtools.amrbase._box import Box, BoxArray, tile_box
from amrtools.amrbase._geom import Geometry, fit_periodicity
from amrtools.amrbase._distrib import DistributionMapping
from amrtools.amrbase._fab import FieldArray, BoxWriter
from amrtools.amrbase._hierarchy import Hierarchy, Level, assemble
