"""Shared fixtures."""

import pytest

from builders import MemoryTopologyStore, external_topology, internal_topology
from netconductor.core.config import Config, set_config
from netconductor.store import FileTopologyStore


@pytest.fixture(autouse=True)
def fresh_config(tmp_path):
    """Every test starts from default configuration."""
    config = Config()
    config.store.root_dir = tmp_path / "topologies"
    set_config(config)
    yield config
    set_config(Config())


@pytest.fixture
def int_data():
    return internal_topology()


@pytest.fixture
def ext_data():
    return external_topology()


@pytest.fixture
def file_store(tmp_path):
    return FileTopologyStore(tmp_path / "topologies")


@pytest.fixture
def memory_store():
    return MemoryTopologyStore()
