import logging
from pathlib import Path
import time

_fileformat_map = {}

log = logging.getLogger(__name__)


def fileformat_reader(name, extension):
    """decorator to register fileformat properties for given name
       in api._fileformat_map

    a reader is a class which is initialized with a filename
    and has the following functions
    - read_data()
    - export_hierarchy() which returns a amrbase.Hierarchy
    """

    def decorator(thisclass):
        properties = {'reader': thisclass, 'ext': extension}
        if name in _fileformat_map:
            _fileformat_map[name].update(properties)
        else:
            _fileformat_map[name] = properties
        return thisclass

    return decorator


def fileformat_writer(name, extension):
    """decorator to register fileformat properties for given name
    in api._fileformat_map

    a writer is a class which is initialized with a amrbase.Hierarchy
    and has a write_data(filename) function
    """

    def decorator(thisclass):
        properties = {'writer': thisclass, 'ext': extension}
        if name in _fileformat_map:
            _fileformat_map[name].update(properties)
        else:
            _fileformat_map[name] = properties
        return thisclass

    return decorator


def available_readers():
    return [name for name, prop in _fileformat_map.items() if 'reader' in prop]


def available_writers():
    return [name for name, prop in _fileformat_map.items() if 'writer' in prop]


class AmrToolsError(RuntimeError):
    """base class of all errors raised by amrtools"""


class InvalidThickness(AmrToolsError):
    """number of cells along the new axis is not strictly positive"""


class AlreadyThreeDimensional(AmrToolsError):
    """source hierarchy already has 3 spatial axes"""


class InconsistentHierarchy(AmrToolsError):
    """cross-level invariant violated (level, ratio or component counts, geometry)"""


class SourceReadFailure(AmrToolsError):
    """input snapshot is missing or cannot be parsed"""


class DestinationWriteFailure(AmrToolsError):
    """output snapshot cannot be written"""


class OwnershipViolation(AmrToolsError):
    """a unit tried to write a box it does not own"""


def error_stop(msg, error=AmrToolsError):
    raise error(msg)


class _files:
    def __init__(self, filename: str):
        self._path = Path(filename)

    @property
    def filename(self):
        return str(self._path)

    @property
    def path(self):
        return self._path

    def exists(self):
        return self._path.exists()

    def __str__(self):
        s = '  filename: ' + self.filename
        return s

    def change_dir(self, newdir):
        self._path = Path(newdir) / Path(self._path.name)

    def remove_dir(self):
        self._path = Path(self._path.name)

    def change_suffix(self, ext: str):
        self._path = self._path.with_suffix(ext)

    def find_safe_newfile(self, split_suffix=True):
        """Returns safe destination, adding (n) before the suffix (or at the end) if needed"""
        safepath = self._path
        # components strings
        folder = safepath.parent
        stem = safepath.stem if split_suffix else safepath.name
        suff = safepath.suffix if split_suffix else ''
        i = 0
        while safepath.exists():
            i += 1
            safepath = Path(folder / (stem + f'({i})' + suff))
        self._path = safepath
        return i > 0

    def printinfo(self):
        log.info(self)


class TimerError(Exception):
    """A custom exception used to report errors in use of Timer class"""


class Timer:  # from https://realpython.com/python-timer/
    default_ltab = 60
    default_msg = ""

    def __init__(self, task="", msg=default_msg, nelem=None, ltab=default_ltab):
        self.reset()
        self._nelem = nelem
        self._ltab = ltab
        self._task = task
        self._msg = msg

    def reset(self):
        self._start_time = None
        self._ncol = 0
        self._elapsed = 0.0

    @property
    def elapsed(self):
        return self._elapsed

    def start(self):
        """Start a new timer"""
        if self._start_time is not None:
            raise TimerError("Timer is running. Use .stop() to stop it")
        self._start_time = time.perf_counter()

    def pause(self):
        """Stop the timer, add elapsed and do NOT report"""
        if self._start_time is None:
            raise TimerError("Timer is not running. Use .start() to start it")
        self._elapsed += time.perf_counter() - self._start_time
        self._start_time = None

    def stop(self, nelem=None):
        """Stop the timer, and report the elapsed time"""
        if nelem is not None:
            self._nelem = nelem
        self.pause()
        nspc = max(self._ltab - self._ncol, 1) * ' '
        if self._nelem is None:
            log.info(nspc + f"wtime: {self._elapsed:0.4f}s")
        else:
            normalized_time_ms = 1e6 * self._elapsed / max(self._nelem, 1)
            log.info(nspc + f"wtime: {self._elapsed:0.4f}s | {normalized_time_ms:0.4f}µs/elem")
        self.reset()

    def __enter__(self):
        log.info(self._task)
        self._ncol = len(self._task)
        if self._ncol >= self._ltab:
            self._ncol = 0
        self.start()
        return self

    def __exit__(self, *exitoptions):
        self.stop()
