import pytest

from libtrack.library import Library
from libtrack.main import LibraryManager


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    # Each test gets its own data directory, picked up by the CLI too
    path = tmp_path / "library_data"
    path.mkdir()
    monkeypatch.setenv("LIBRARY_DATA_DIR", str(path))
    monkeypatch.setenv("LIB_CLI_OUTPUT", "plain")
    LibraryManager.reset()
    yield path
    LibraryManager.reset()


@pytest.fixture
def lib(data_dir):
    return Library(data_dir=str(data_dir))
