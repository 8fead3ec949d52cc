import logging

import pytest

from fakes import FakeNetwork, snapshot


@pytest.fixture
def content_dir(tmp_path):
    site = tmp_path / "local" / "site"
    (site / "sub").mkdir(parents=True)
    (site / "a.txt").write_text("alpha\n")
    (site / "sub" / "b.txt").write_text("bravo\n")
    return site


@pytest.fixture
def network(tmp_path):
    return FakeNetwork(tmp_path / "remote")


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def tree_snapshot():
    return snapshot
