import logging
from pathlib import Path

import numpy as np

import amrtools.api as api
from amrtools.amrbase import Box, BoxArray, DistributionMapping, FieldArray, Geometry, assemble, fit_periodicity
from amrtools.plotfile import _plotfile as _pf

log = logging.getLogger(__name__)


class _lines:
    """sequential access to the lines of a text header"""

    def __init__(self, text: str, name: str):
        self._lines = text.splitlines()
        self._name = name
        self._index = 0

    def next(self):
        if self._index >= len(self._lines):
            api.error_stop(f"unexpected end of {self._name}", api.SourceReadFailure)
        line = self._lines[self._index]
        self._index += 1
        return line.strip()

    def ints(self):
        return [int(v) for v in self.next().split()]

    def floats(self):
        return [float(v) for v in self.next().split()]


@api.fileformat_reader('AMREX', '')
class plotfileReader:
    """reader of AMReX plotfile directories

    periodicity and owner assignment are not stored in plotfiles: periodicity is
    provided by the caller (default: periodic along all axes) and boxes are
    assigned round-robin to `nunits` units.
    """

    def __init__(self, filename, periodicity=None, nunits=1):
        self._path = Path(filename)
        self._periodicity = periodicity
        self._nunits = nunits
        self._header = None
        self._levels = []

    @property
    def ncell(self):
        return sum(level['boxarray'].numpts for level in self._levels)

    @property
    def nlevels(self):
        return self._header['finest_level'] + 1

    @property
    def dim(self):
        return self._header['dim']

    def read_data(self):
        log.info(f"> AMReX plotfile reader: starts reading {self._path}")
        if not (self._path / "Header").is_file():
            api.error_stop(f"plotfile Header not found in {str(self._path)!r}", api.SourceReadFailure)
        try:
            self._read_header()
            self._levels = [self._read_level(lev) for lev in range(self.nlevels)]
        except (OSError, ValueError, IndexError, KeyError) as err:
            raise api.SourceReadFailure(f"malformed plotfile {str(self._path)!r}: {err}") from err

    def _read_header(self):
        lines = _lines((self._path / "Header").read_text(), "Header")
        h = {}
        h['version'] = lines.next()
        if not h['version'].startswith("HyperCLaw"):
            api.error_stop(f"unknown plotfile version {h['version']!r}", api.SourceReadFailure)
        ncomp = int(lines.next())
        h['varnames'] = [lines.next() for _ in range(ncomp)]
        h['dim'] = dim = int(lines.next())
        h['time'] = float(lines.next())
        h['finest_level'] = finest = int(lines.next())
        h['prob_lo'] = lines.floats()
        h['prob_hi'] = lines.floats()
        h['ref_ratio'] = lines.ints()
        domains = lines.next()
        h['domains'] = [Box.from_string(s) for s in _split_boxes(domains)]
        h['level_steps'] = lines.ints()
        h['cellsize'] = [lines.floats() for _ in range(finest + 1)]
        h['coord'] = int(lines.next())
        h['bwidth'] = int(lines.next())
        h['levels'] = []
        for _ in range(finest + 1):
            lev, ngrid, _time = lines.next().split()
            step = int(lines.next())
            for _ in range(int(ngrid) * dim):
                lines.next()
            mfname = lines.next()
            h['levels'].append({'level': int(lev), 'nbox': int(ngrid), 'step': step, 'mf': mfname})
        if len(h['domains']) != finest + 1 or len(h['ref_ratio']) < finest:
            api.error_stop("inconsistent number of levels in Header", api.SourceReadFailure)
        self._header = h

    def _read_level(self, lev: int):
        info = self._header['levels'][lev]
        mfheader = self._path / (info['mf'] + "_H")
        if not mfheader.is_file():
            api.error_stop(f"multifab header {str(mfheader)!r} not found", api.SourceReadFailure)
        lines = _lines(mfheader.read_text(), mfheader.name)
        lines.next()  # vismf version
        lines.next()  # how
        ncomp = int(lines.next())
        ngrow = _pf.parse_intvect(lines.next())
        nbox = int(lines.next().strip('(').split()[0])
        boxarray = BoxArray(Box.from_string(lines.next()) for _ in range(nbox))
        lines.next()  # )
        if int(lines.next()) != nbox:
            api.error_stop(f"inconsistent number of FABs in {mfheader.name}", api.SourceReadFailure)
        fabondisk = []
        for _ in range(nbox):
            _, fname, offset = lines.next().split()
            fabondisk.append((fname, int(offset)))
        if ncomp != len(self._header['varnames']):
            api.error_stop(
                f"level {lev} has {ncomp} components for {len(self._header['varnames'])} names",
                api.SourceReadFailure,
            )
        dim = self._header['dim']
        ngrow = tuple(np.broadcast_to(ngrow, (dim,)).tolist())
        fabs = [
            self._read_fab(mfheader.parent / fname, offset, boxarray[i].grow(ngrow), ncomp)
            for i, (fname, offset) in enumerate(fabondisk)
        ]
        log.info(f"  level {lev}: {nbox} boxes, {boxarray.numpts} cells, ngrow {ngrow}")
        return {'boxarray': boxarray, 'ngrow': ngrow, 'fabs': fabs}

    def _read_fab(self, filename: Path, offset: int, expected: Box, ncomp: int):
        with open(filename, 'rb') as f:
            f.seek(offset)
            box, fabncomp, dtype = _pf.parse_fab_header(f.readline().decode('ascii'))
            if box != expected or fabncomp != ncomp:
                api.error_stop(
                    f"FAB {box} with {fabncomp} components does not match {expected} in {filename.name}",
                    api.SourceReadFailure,
                )
            count = box.numpts * ncomp
            data = np.frombuffer(f.read(count * dtype.itemsize), dtype=dtype)
        if data.size != count:
            api.error_stop(f"truncated data in {filename.name}", api.SourceReadFailure)
        return data.reshape((*box.size, ncomp), order='F').astype(np.float64)

    def _ref_ratios(self):
        """ratio vectors from level domains, checked against Header ratio along x"""
        domains = self._header['domains']
        ratios = []
        for lev in range(self.nlevels - 1):
            ratio = domains[lev + 1].size // domains[lev].size
            if ratio[0] != self._header['ref_ratio'][lev]:
                api.error_stop(
                    f"refinement ratio {self._header['ref_ratio'][lev]} does not match domains of level {lev}",
                    api.SourceReadFailure,
                )
            ratios.append(tuple(ratio.tolist()))
        return ratios

    def export_hierarchy(self):
        h = self._header
        dim = h['dim']
        periodicity = (1,) * dim if self._periodicity is None else fit_periodicity(self._periodicity, dim)
        geometries = [
            Geometry(domain, h['prob_lo'], h['prob_hi'], coord=h['coord'], periodicity=periodicity)
            for domain in h['domains']
        ]
        boxarrays = [level['boxarray'] for level in self._levels]
        dmaps = [DistributionMapping.round_robin(len(ba), self._nunits) for ba in boxarrays]
        fields = [
            FieldArray(level['boxarray'], h['varnames'], level['ngrow'], fabs=level['fabs'])
            for level in self._levels
        ]
        return assemble(
            geometries,
            boxarrays,
            dmaps,
            fields,
            h['time'],
            h['level_steps'],
            self._ref_ratios(),
            h['varnames'],
        )

    def printinfo(self):
        h = self._header
        log.info(f"  path: {self._path}")
        log.info(f"  version: {h['version']}")
        log.info(f"  dimension: {h['dim']}, finest level: {h['finest_level']}, time: {h['time']}")
        log.info(f"  variables: {' '.join(h['varnames'])}")


def _split_boxes(string: str):
    """split `((..) (..) (..)) ((..) (..) (..))` in box strings"""
    boxes, depth, start = [], 0, None
    for i, c in enumerate(string):
        if c == '(':
            if depth == 0:
                start = i
            depth += 1
        elif c == ')':
            depth -= 1
            if depth == 0:
                boxes.append(string[start : i + 1])
    return boxes
