# hdf5 subpackage
from amrtools.hdf5._hdf5 import h5File, h5_str
from amrtools.hdf5.amrh5 import amrh5Reader, amrh5Writer
