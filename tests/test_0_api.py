import pytest

import amrtools.api as api


@pytest.mark.parametrize(
    "error",
    [
        api.InvalidThickness,
        api.AlreadyThreeDimensional,
        api.InconsistentHierarchy,
        api.SourceReadFailure,
        api.DestinationWriteFailure,
        api.OwnershipViolation,
    ],
)
def test_error_hierarchy(error):
    assert issubclass(error, api.AmrToolsError)
    assert issubclass(error, RuntimeError)
    with pytest.raises(error, match="reason"):
        api.error_stop("reason", error)


def test_error_stop_default():
    with pytest.raises(api.AmrToolsError):
        api.error_stop("generic failure")


def test_files(tmp_path):
    file = api._files("some/dir/plt00010_3D.h5")
    assert file.filename == "some/dir/plt00010_3D.h5"
    file.change_dir(tmp_path)
    assert file.path == tmp_path / "plt00010_3D.h5"
    assert not file.exists()
    file.change_suffix(".vtm")
    assert file.path.name == "plt00010_3D.vtm"
    file.remove_dir()
    assert file.filename == "plt00010_3D.vtm"


def test_files_safe_newfile(tmp_path):
    (tmp_path / "out.h5").touch()
    file = api._files(tmp_path / "out.h5")
    assert file.find_safe_newfile()
    assert file.path == tmp_path / "out(1).h5"
    file = api._files(tmp_path / "other.h5")
    assert not file.find_safe_newfile()


def test_timer():
    timer = api.Timer(task="> test")
    timer.start()
    with pytest.raises(api.TimerError):
        timer.start()
    timer.pause()
    assert timer.elapsed >= 0.0
    with pytest.raises(api.TimerError):
        timer.pause()
    timer.start()
    timer.stop(nelem=10)
    with api.Timer(task="> context") as t:
        assert isinstance(t, api.Timer)


def test_registry():
    import amrtools._cli  # noqa: F401 registers all formats

    assert set(api.available_readers()) == {'AMREX', 'AMRH5'}
    assert set(api.available_writers()) == {'AMREX', 'AMRH5', 'VTK'}
    assert api._fileformat_map['AMRH5']['ext'] == '.h5'


def test_files_safe_newdir(tmp_path):
    (tmp_path / "plt.0010_3D").mkdir()
    file = api._files(tmp_path / "plt.0010_3D")
    assert file.find_safe_newfile(split_suffix=False)
    assert file.path == tmp_path / "plt.0010_3D(1)"
