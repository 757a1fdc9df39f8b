from pathlib import Path
import shutil

import numpy as np
import pytest

import amrtools.api as api
from amrtools.lift import extrude_hierarchy, pseudo3d_hierarchy
from amrtools.vtk import vtkWriter

pv = pytest.importorskip("pyvista")


def test_vtk_box_image(hier_multibox):
    hier3d = extrude_hierarchy(hier_multibox, 2)
    image = vtkWriter(hier3d).box_image(0, 1)
    box = hier3d[0].boxarray[1]
    assert image.n_cells == box.numpts
    assert np.allclose(image.origin, [0.0, 0.0, 0.0])
    assert np.allclose(image.spacing, [0.25, 0.25, 0.25])
    rho = image.cell_data['rho']
    assert np.array_equal(rho, hier3d[0].field.component(1, 'rho').ravel(order='F'))
    assert np.all(image.cell_data['level'] == 0)


def test_vtk_box_image_2d(hier_single):
    image = vtkWriter(hier_single).box_image(0, 0)
    assert image.n_cells == 16
    assert set(image.cell_data.keys()) == {'density', 'pressure', 'level'}


def test_vtk_multiblock(builddir, hier_twolevel):
    hier3d = pseudo3d_hierarchy(hier_twolevel)
    blocks = vtkWriter(hier3d).multiblock()
    assert blocks.n_blocks == 2
    assert blocks[1].n_blocks == 2
    assert blocks[1][0].cell_data['level'][0] == 1
    path = builddir / "twolevel_3D.vtm"
    output = vtkWriter(hier3d).write_data(path)
    assert output == str(path)
    assert path.is_file()
    path.unlink()
    shutil.rmtree(path.with_suffix(""), ignore_errors=True)


def test_vtk_existing_destination(builddir, hier_single):
    path = builddir / "existing.vtm"
    path.touch()
    with pytest.raises(api.DestinationWriteFailure):
        vtkWriter(hier_single).write_data(path)
    assert path.stat().st_size == 0
    path.unlink()
    blockdir = builddir / "existing"
    blockdir.mkdir(exist_ok=True)
    with pytest.raises(api.DestinationWriteFailure):
        vtkWriter(hier_single).write_data(path)
    assert not path.exists()
    blockdir.rmdir()


class failingBlocks:
    """writes part of a multiblock output then fails"""

    def save(self, filename):
        path = Path(filename)
        path.write_text("<VTKFile/>")
        path.with_suffix("").mkdir()
        (path.with_suffix("") / "block_0.vti").write_text("")
        raise OSError("disk full")


def test_vtk_failure_cleanup(builddir, hier_single, monkeypatch):
    path = builddir / "failing.vtm"
    writer = vtkWriter(hier_single)
    monkeypatch.setattr(writer, "multiblock", lambda: failingBlocks())
    with pytest.raises(api.DestinationWriteFailure, match="disk full"):
        writer.write_data(path)
    assert not path.exists()
    assert not path.with_suffix("").exists()
