import logging
from pathlib import Path
import shutil

import numpy as np

import amrtools.api as api
from amrtools.amrbase import Hierarchy
from amrtools.plotfile import _plotfile as _pf

log = logging.getLogger(__name__)


def _join(values, fmt=repr):
    return "".join(fmt(v) + " " for v in values)


def _real(value):
    return repr(float(value))


@api.fileformat_writer('AMREX', '')
class plotfileWriter:
    """writer of AMReX plotfile directories (one data file per level)

    the plotfile is first written in a temporary directory which is renamed at the end,
    nothing is left in place if writing fails
    """

    def __init__(self, hierarchy: Hierarchy, dtype=np.float64):
        self._hierarchy = hierarchy
        self._dtype = np.dtype(dtype).newbyteorder('<')

    def write_data(self, filename):
        path = Path(filename)
        log.info(f"> AMReX plotfile writer: {path}")
        if path.exists():
            api.error_stop(f"{str(path)!r} already exists", api.DestinationWriteFailure)
        tmppath = path.with_name(path.name + ".temp")
        try:
            if tmppath.exists():
                shutil.rmtree(tmppath)
            tmppath.mkdir(parents=True)
            self._hierarchy.check()
            for lev in range(self._hierarchy.nlevels):
                self._write_level(tmppath, lev)
            self._write_header(tmppath)
            tmppath.rename(path)
        except (OSError, api.AmrToolsError) as err:
            shutil.rmtree(tmppath, ignore_errors=True)
            raise api.DestinationWriteFailure(f"unable to write plotfile {str(path)!r}: {err}") from err
        log.info(f"  {self._hierarchy.nlevels} level(s) written")
        return str(path)

    def _write_header(self, path: Path):
        hier = self._hierarchy
        geom0 = hier[0].geometry
        lines = [_pf.plotfile_version, str(hier.ncomp), *hier.varnames]
        lines.append(str(hier.dim))
        lines.append(_real(hier.time))
        lines.append(str(hier.finest_level))
        lines.append(_join(geom0.prob_lo, _real))
        lines.append(_join(geom0.prob_hi, _real))
        # plotfile headers store the ratio along x only
        lines.append(_join((ratio[0] for ratio in hier.ref_ratios), str))
        lines.append(_join((level.geometry.domain for level in hier), str))
        lines.append(_join(hier.level_steps, str))
        for level in hier:
            lines.append(_join(level.geometry.cellsize, _real))
        lines.append(str(geom0.coord))
        lines.append("0")
        for lev, level in enumerate(hier):
            lines.append(f"{lev} {level.nbox} {_real(hier.time)}")
            lines.append(str(level.step))
            lo, dx = level.geometry.prob_lo, level.geometry.cellsize
            for box in level.boxarray:
                for d in range(hier.dim):
                    lines.append(f"{_real(lo[d] + box.lo[d] * dx[d])} {_real(lo[d] + (box.hi[d] + 1) * dx[d])}")
            lines.append(f"{_pf.level_dir(lev)}/{_pf.multifab_prefix}")
        (path / "Header").write_text("\n".join(lines) + "\n")

    def _write_level(self, path: Path, lev: int):
        level = self._hierarchy[lev]
        field = level.field
        levpath = path / _pf.level_dir(lev)
        levpath.mkdir()
        dataname = _pf.data_filename(0)
        offsets = []
        with open(levpath / dataname, 'wb') as f:
            for i in range(field.nfab):
                offsets.append(f.tell())
                f.write(_pf.fab_header(field.fabbox(i), field.ncomp, self._dtype).encode('ascii'))
                f.write(field.fab(i).astype(self._dtype).tobytes(order='F'))
        ngrow = field.ngrow
        lines = [str(_pf.vismf_version), "0", str(field.ncomp)]
        if len(set(ngrow)) == 1:
            lines.append(str(ngrow[0]))
        else:
            lines.append("(" + ",".join(map(str, ngrow)) + ")")
        lines.append(f"({field.nfab} 0")
        lines.extend(str(box) for box in level.boxarray)
        lines.append(")")
        lines.append(str(field.nfab))
        lines.extend(f"FabOnDisk: {dataname} {offset}" for offset in offsets)
        lines.append("")
        minmax = [field.minmax(i) for i in range(field.nfab)]
        for k in (0, 1):
            lines.append(f"{field.nfab},{field.ncomp}")
            lines.extend("".join(f"{_real(v)}," for v in mm[k]) for mm in minmax)
            lines.append("")
        (levpath / (_pf.multifab_prefix + "_H")).write_text("\n".join(lines) + "\n")
        log.info(f"  level {lev}: {field.nfab} boxes written to {_pf.level_dir(lev)}/{dataname}")
