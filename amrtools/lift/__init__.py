# 2-D to 3-D lift subpackage
from amrtools.lift._lift import check_liftable, lift, lift_boxarray, lift_geometry
from amrtools.lift._replicate import Extrude, PseudoReplicate, extrude, pseudo_replicate
from amrtools.lift._convert import extrude_hierarchy, pseudo3d_hierarchy
