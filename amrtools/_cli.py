import argparse
import logging
from pathlib import Path
import sys

# Command-Line Interface

import amrtools.api as api

# readers and writers - must be imported to update api format dict
import amrtools.plotfile  # noqa: F401
import amrtools.hdf5  # noqa: F401
import amrtools.vtk  # noqa: F401

from amrtools.lift import extrude_hierarchy, pseudo3d_hierarchy

log = logging.getLogger(__name__)

# To add a command line tool, add its `_main` wrapper in pyproject.toml section
# [project.scripts]
# amrinfo = 'amrtools._cli:amrinfo_main'

output_suffix = "_3D"


# W/o  argument: @cli_header()
#                 --> <funcname>
# With altfname: @cli_header(altfname="<altfn>")
#                 --> <altfname>
def cli_header(prefix=None, altfname=None):
    def name_decorator(func):
        def decorator(*args, **kwargs):
            fname = func.__name__ if altfname is None else altfname
            if prefix is not None:
                fname = prefix + fname
            func.__globals__['__fname__'] = fname  # need noqa: F821 for flake8 if using __fname__
            log.info(f"AMRTOOLS - {fname}")
            return func(*args, **kwargs)

        return decorator

    return name_decorator


def cli_main(func):
    """console script entry: runs func and exits with status 1 on amrtools errors"""

    def main(argv=None):
        try:
            func(argv)
        except api.AmrToolsError as err:
            log.error(f"{type(err).__name__}: {err}")
            sys.exit(1)

    return main


class cli_argparser:
    def __init__(self, **kwargs):
        self._parser = argparse.ArgumentParser(**kwargs)
        self._available_readers = api.available_readers()
        self._available_writers = api.available_writers()

    def add_argument(self, option, *args, **kwargs):
        return self._parser.add_argument(option, *args, **kwargs)

    def addarg_filenameformat(self, format=None):
        self.add_argument('filename', help="plotfile directory or file")
        self.add_argument('--fmt', help="input file format", choices=self._available_readers, default=format)
        self.add_argument('--nunits', type=int, help="number of owner units of boxes (default: stored or 1)")
        self.add_argument('--info', action="store_true", dest="info", help="print information")
        self.add_argument(
            '--log', default='info', help=("provide logging level. Default: info. Example: --log debug.")
        )

    def addarg_output(self):
        self.add_argument('--outfmt', help="output file format (default: input format)", choices=self._available_writers)
        self.add_argument('--outpath', help="output folder path")

    def addarg_periodicity(self):
        self.add_argument(
            '--is-per',
            nargs=3,
            type=int,
            default=None,
            dest="is_per",
            metavar=('L', 'M', 'N'),
            help="periodicity (0 or 1) along x, y and new z axis. Default: in-plane from source, periodic along z",
        )

    def addarg_lift(self, thickness=False):
        if thickness:
            self.add_argument('-n', '--ncells', type=int, required=True, help="number of cells along z")
        self.add_argument('--nworkers', type=int, default=1, help="number of threads for replication")

    def parse_cli_args(self, argv):
        self._args = self._parser.parse_args(argv)

    def args(self, key=None):
        return self._args if key is None else vars(self._args)[key]

    def argsdict(self):
        return vars(self._args)

    def parse_filenameformat(self):
        """parse args to get filename, automatic or specified format

        a directory with a Header file is an AMReX plotfile, other formats are found with extension
        """
        path = Path(self._args.filename)
        if self.args().fmt is not None:
            thisfmt = [self.args().fmt]
        elif path.is_dir() and (path / "Header").is_file():
            thisfmt = ['AMREX']
        else:
            ext = path.suffix
            thisfmt = [name for name in self._available_readers if api._fileformat_map[name]['ext'] == ext]
        if len(thisfmt) == 0:
            api.error_stop(f"no format found for {str(path)!r}", api.SourceReadFailure)
        elif len(thisfmt) > 1:
            api.error_stop("too many formats found\n" "must specify format with --fmt")
        self._fileformat = thisfmt[0]
        self._reader = api._fileformat_map[self._fileformat].get('reader', None)
        outfmt = self._args.outfmt if 'outfmt' in self._args and self._args.outfmt else self._fileformat
        self._outformat = outfmt
        self._writer = api._fileformat_map[outfmt].get('writer', None)

    def reader(self):
        options = {}
        if getattr(self._args, "is_per", None) is not None:
            options['periodicity'] = self._args.is_per[:2]
        if self._args.nunits is not None:
            options['nunits'] = self._args.nunits
        return self._reader(self._args.filename, **options)

    def output_file(self, suffix=output_suffix):
        """output name: suffix appended to the plotfile name or to the stem of single files"""
        path = Path(self._args.filename)
        inext = api._fileformat_map[self._fileformat]['ext']
        outext = api._fileformat_map[self._outformat]['ext']
        base = path.stem if inext else path.name
        file = api._files(path.with_name(base + suffix + outext))
        if self._args.outpath is not None:
            Path(self._args.outpath).mkdir(parents=True, exist_ok=True)
            file.change_dir(self._args.outpath)
        if file.find_safe_newfile(split_suffix=bool(outext)):
            log.info("change output to safe new name " + file.filename)
        return file


def read_hierarchy(parser: cli_argparser):
    file = api._files(parser.args().filename)
    log.info(f"> read {parser._fileformat} file {file.filename}")
    timer = api.Timer()
    timer.start()
    r = parser.reader()
    r.read_data()
    ncell = r.ncell
    timer.stop(nelem=ncell)
    log.info("> export hierarchy")
    return r.export_hierarchy()


@cli_header()
def amrinfo(argv=None):
    """fully reads all supported formats,
    converts to an internal hierarchy and prints a sum up of available information.
    """
    parser = cli_argparser(prog=__fname__)  # noqa: F821
    parser.addarg_filenameformat()
    parser.parse_cli_args(argv)
    parser.parse_filenameformat()
    #
    hierarchy = read_hierarchy(parser)
    hierarchy.printinfo()
    return True  # needed for pytest


def lift_generic(argv, transform, thickness=False, fname=None):
    parser = cli_argparser(prog=fname)
    parser.addarg_filenameformat()
    parser.addarg_output()
    parser.addarg_periodicity()
    parser.addarg_lift(thickness=thickness)
    parser.parse_cli_args(argv)
    parser.parse_filenameformat()
    if parser._writer is None:
        api.error_stop(f"no writer available for {parser._outformat}", api.DestinationWriteFailure)
    #
    hierarchy = read_hierarchy(parser)
    if parser.args().info:
        hierarchy.printinfo()
    timer = api.Timer()
    timer.start()
    hier3d = transform(hierarchy, parser.args())
    timer.stop(nelem=sum(level.boxarray.numpts for level in hier3d))
    if parser.args().info:
        hier3d.printinfo()
    #
    file = parser.output_file()
    timer.start()
    output = parser._writer(hier3d)
    output.write_data(file.filename)
    timer.stop()
    log.info(f"file {file.filename} written")
    return file.filename  # filename needed for pytest (for eventual rm)


def _zperiodic(args):
    return 1 if args.is_per is None else args.is_per[2]


def _extrude(hierarchy, args):
    log.info(f"> extrusion along nz={args.ncells} cells")
    return extrude_hierarchy(hierarchy, args.ncells, zperiodic=_zperiodic(args), nworkers=args.nworkers)


def _pseudo3d(hierarchy, args):
    log.info(f"> pseudo 3D lift of {hierarchy.nlevels} level(s)")
    return pseudo3d_hierarchy(hierarchy, zperiodic=_zperiodic(args), nworkers=args.nworkers)


@cli_header()
def amrextrude(argv=None):
    """reads a 2D hierarchy and writes the 3D extrusion of its level 0 over --ncells cells"""
    return lift_generic(argv, _extrude, thickness=True, fname=__fname__)  # noqa: F821


@cli_header()
def amrpseudo3d(argv=None):
    """reads a 2D hierarchy and writes all its levels as one cell thick 3D levels"""
    return lift_generic(argv, _pseudo3d, fname=__fname__)  # noqa: F821


amrinfo_main = cli_main(amrinfo)
amrextrude_main = cli_main(amrextrude)
amrpseudo3d_main = cli_main(amrpseudo3d)
