import logging

import h5py
import numpy as np

from amrtools import __version__
from amrtools.api import _files, error_stop, SourceReadFailure

_available_types = ('external', 'amrhierarchy')

log = logging.getLogger(__name__)


def h5_str(obj):
    """decode an hdf5 string attribute (str, bytes or array of int8)"""
    if isinstance(obj, bytes):
        return obj.decode('utf-8')
    if isinstance(obj, str):
        return obj
    return "".join(map(chr, obj))


def h5_strlist(values):
    return [h5_str(v) for v in values]


class h5File(_files):
    def __init__(self, filename: str):
        super().__init__(filename)
        self._h5file = None
        self._openedmode = None
        self._datatype = None
        self._amrtools_version = None
        self._version = None

    def open(self, mode='r', datatype=None, version=None):
        """open hdf5 file and parse some version info

        Args:
            mode (str, default: 'r'): could be 'r', 'r+', 'w', 'w-', 'x', 'a' (see h5py.File)
            datatype (str, optional): amrtools datatype, must be given when writing
            version (int, optional): version of datatype, must be given when writing
        """
        try:
            self._h5file = h5py.File(self._path, mode=mode)
        except OSError as err:
            raise OSError(f"{self._path} can not be open in {mode} mode.") from err
        if mode in ('w', 'w-', 'x'):
            assert datatype in _available_types
            if version is None:
                error_stop('an existing amrtools datatype must provide a version number for writing')
            self._h5file.attrs.update(
                {'amrtools_version': __version__, 'amr_datatype': datatype, 'data_version': version}
            )
            self._datatype = datatype
            self._version = version
        elif mode in ('r', 'r+'):
            self._datatype = self._h5file.attrs.get('amr_datatype', None)
            if self._datatype is not None:
                self._datatype = h5_str(self._datatype)
            self._amrtools_version = self._h5file.attrs.get('amrtools_version', None)
            # if datatype, read or set to 0 (backward compatibility) else ignore
            self._version = self._h5file.attrs.get('data_version', 0 if self._datatype else None)
        else:
            error_stop("unknown mode for opening h5 file")
        self._openedmode = mode

    def close(self):
        if self._h5file is not None:
            self._h5file.close()
            self._h5file = None

    def __enter__(self):
        return self

    def __exit__(self, *exitoptions):
        self.close()

    @property
    def datatype(self):
        return self._datatype

    @property
    def version(self):
        return self._version

    def __getitem__(self, item):
        return self._h5file[item]

    @property
    def attrs(self):
        return self._h5file.attrs

    def create_group(self, path):
        return self._h5file.create_group(path)

    def check_datatype(self, datatype):
        if self._datatype != datatype:
            error_stop(f"{self.filename} is not a {datatype} file ({self._datatype})", SourceReadFailure)

    def printinfo(self):
        super().printinfo()
        if self._openedmode:
            if self._amrtools_version:
                log.info(f"     amrtools version: {h5_str(self._amrtools_version)}")
            if self._datatype:
                log.info(f"        amrtools type: {self._datatype}")
            if self._version is not None:
                log.info(f"amrtools data version: {self._version}")


def write_strlist(attrs, key, values):
    attrs[key] = np.array(list(values), dtype=h5py.string_dtype())
