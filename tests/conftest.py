from __future__ import annotations

import pytest

from arcadegate.core.config.models import AuthorityConfig
from arcadegate.core.config.paths import ConfigFsPaths
from tests.helpers.fakes import RecordingLogger


@pytest.fixture
def fs(tmp_path):
    """
    Isolated root with config/, runtime/ and logs/ under tmp_path.
    """
    return ConfigFsPaths(root=str(tmp_path))


@pytest.fixture
def cfg():
    # cheap scrypt parameters keep the suite fast
    return AuthorityConfig.model_validate({"security": {"kdf_n": 2**10, "kdf_r": 8, "kdf_p": 1}})


@pytest.fixture
def memory_cfg(cfg):
    return cfg.model_copy(update={"store": cfg.store.model_copy(update={"engine": "memory"})})


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture(params=["memory", "sqlite"])
def engine_cfg(request, cfg):
    """Same config on each store engine."""
    return cfg.model_copy(update={"store": cfg.store.model_copy(update={"engine": request.param})})
