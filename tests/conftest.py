from typing import Any

import pytest

from fakes import FakeSession


@pytest.fixture
def make_session():
    def factory(*responses: Any) -> FakeSession:
        return FakeSession(list(responses))

    return factory


@pytest.fixture(autouse=True)
def isolated_cache(tmp_path, monkeypatch):
    monkeypatch.delenv("SUI_MONITOR_CACHE_DIR", raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
