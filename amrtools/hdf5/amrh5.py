"""single file HDF5 layout of an AMR hierarchy

::

    /                 attrs: time, dim, nlevels, varnames (+ amrtools version info)
    /level_<l>        attrs: domain_lo, domain_hi, prob_lo, prob_hi, coord, periodicity,
                             step, ngrow, ref_ratio (to level l+1, if any)
    /level_<l>/boxes  (nbox, 2*dim) lo then hi of each box
    /level_<l>/owners (nbox,) owner unit of each box
    /level_<l>/data/<i:05d>  data of box i, ghost cells included, shape (*size, ncomp)
"""
import logging
from pathlib import Path

import numpy as np

import amrtools.api as api
from amrtools.amrbase import BoxArray, DistributionMapping, FieldArray, Geometry, Hierarchy, Box, assemble, fit_periodicity
from amrtools.hdf5._hdf5 import h5File, h5_strlist, write_strlist

log = logging.getLogger(__name__)

_datatype = 'amrhierarchy'
_version = 1


def _levelname(lev):
    return f"level_{lev}"


@api.fileformat_reader('AMRH5', '.h5')
class amrh5Reader:
    """reader of amrtools hdf5 hierarchy files, periodicity may be overridden"""

    def __init__(self, filename, periodicity=None, nunits=None):
        self._filename = filename
        self._periodicity = periodicity
        self._nunits = nunits
        self._hierarchy = None

    @property
    def ncell(self):
        return sum(level.boxarray.numpts for level in self._hierarchy) if self._hierarchy else 0

    def read_data(self):
        log.info(f"> AMRH5 reader: starts reading {self._filename}")
        if not Path(self._filename).is_file():
            api.error_stop(f"File not found: {str(self._filename)!r}", api.SourceReadFailure)
        try:
            with h5File(self._filename) as h5f:
                h5f.open()
                h5f.check_datatype(_datatype)
                self._hierarchy = self._read(h5f)
        except (OSError, KeyError, ValueError) as err:
            raise api.SourceReadFailure(f"malformed file {str(self._filename)!r}: {err}") from err

    def _read(self, h5f: h5File):
        attrs = h5f.attrs
        dim = int(attrs['dim'])
        nlevels = int(attrs['nlevels'])
        varnames = h5_strlist(attrs['varnames'])
        geometries, boxarrays, dmaps, fields, steps, ratios = [], [], [], [], [], []
        for lev in range(nlevels):
            group = h5f[_levelname(lev)]
            gattrs = group.attrs
            periodicity = gattrs['periodicity'] if self._periodicity is None else fit_periodicity(self._periodicity, dim)
            geometries.append(
                Geometry(
                    Box(gattrs['domain_lo'], gattrs['domain_hi']),
                    gattrs['prob_lo'],
                    gattrs['prob_hi'],
                    coord=int(gattrs['coord']),
                    periodicity=periodicity,
                )
            )
            boxes = group['boxes'][()].reshape(-1, 2 * dim)
            ba = BoxArray.from_arrays(boxes[:, :dim], boxes[:, dim:])
            boxarrays.append(ba)
            if self._nunits is None:
                dmaps.append(DistributionMapping(group['owners'][()]))
            else:
                dmaps.append(DistributionMapping.round_robin(len(ba), self._nunits))
            data = group['data']
            fabs = [data[f"{i:05d}"][()].astype(np.float64) for i in range(len(ba))]
            fields.append(FieldArray(ba, varnames, tuple(gattrs['ngrow'].tolist()), fabs=fabs))
            steps.append(int(gattrs['step']))
            if lev < nlevels - 1:
                ratios.append(tuple(gattrs['ref_ratio'].tolist()))
        return assemble(geometries, boxarrays, dmaps, fields, float(attrs['time']), steps, ratios, varnames)

    def export_hierarchy(self) -> Hierarchy:
        return self._hierarchy


@api.fileformat_writer('AMRH5', '.h5')
class amrh5Writer:
    def __init__(self, hierarchy: Hierarchy, **options):
        self._hierarchy = hierarchy
        self._options = options  # h5py dataset options (compression...)

    def write_data(self, filename):
        hier = self._hierarchy
        path = Path(filename)
        log.info(f"> AMRH5 writer: {path}")
        if path.exists():
            api.error_stop(f"{str(path)!r} already exists", api.DestinationWriteFailure)
        try:
            hier.check()
            with h5File(path) as h5f:
                h5f.open(mode='w-', datatype=_datatype, version=_version)
                h5f.attrs.update({'time': hier.time, 'dim': hier.dim, 'nlevels': hier.nlevels})
                write_strlist(h5f.attrs, 'varnames', hier.varnames)
                for lev, level in enumerate(hier):
                    self._write_level(h5f, lev, level)
        except (OSError, api.AmrToolsError) as err:
            path.unlink(missing_ok=True)
            raise api.DestinationWriteFailure(f"unable to write {str(path)!r}: {err}") from err
        return str(path)

    def _write_level(self, h5f: h5File, lev, level):
        group = h5f.create_group(_levelname(lev))
        geom = level.geometry
        group.attrs.update(
            {
                'domain_lo': geom.domain.lo,
                'domain_hi': geom.domain.hi,
                'prob_lo': geom.prob_lo,
                'prob_hi': geom.prob_hi,
                'coord': geom.coord,
                'periodicity': geom.periodicity,
                'step': level.step,
                'ngrow': level.field.ngrow,
            }
        )
        if lev < self._hierarchy.finest_level:
            group.attrs['ref_ratio'] = self._hierarchy.ref_ratios[lev]
        ba = level.boxarray
        group.create_dataset('boxes', data=np.hstack((ba.lo_array(), ba.hi_array())))
        group.create_dataset('owners', data=level.distribution.owners)
        data = group.create_group('data')
        for i in range(level.field.nfab):
            data.create_dataset(f"{i:05d}", data=level.field.fab(i), **self._options)
        log.info(f"  level {lev}: {level.nbox} boxes written")
