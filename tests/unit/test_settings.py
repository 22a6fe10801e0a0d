from unittest.mock import patch

import pytest

from config.settings import EngineSettings, load_settings

ENV_VARS = [
    "HOST", "PORT", "NODES_DIR", "NEXUS_DIR", "NODE_HOST", "NODE_BASE_PORT",
    "SORT_NODE_DIRS", "SCHEDULER", "HEALTH_TIMEOUT", "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    with patch("config.settings.load_dotenv"):
        yield monkeypatch


def test_defaults(clean_env):
    assert load_settings() == EngineSettings()


def test_environment_overrides(clean_env):
    clean_env.setenv("PORT", "8000")
    clean_env.setenv("NODES_DIR", "/srv/nodes")
    clean_env.setenv("SORT_NODE_DIRS", "true")
    clean_env.setenv("SCHEDULER", "levels")
    clean_env.setenv("HEALTH_TIMEOUT", "1.5")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.port == 8000
    assert settings.nodes_dir == "/srv/nodes"
    assert settings.sort_node_dirs is True
    assert settings.scheduler == "levels"
    assert settings.health_timeout == 1.5
    assert settings.log_level == "DEBUG"


def test_invalid_numbers_fall_back(clean_env):
    clean_env.setenv("PORT", "not-a-port")
    clean_env.setenv("HEALTH_TIMEOUT", "soon")

    settings = load_settings()

    assert settings.port == 3000
    assert settings.health_timeout == 5.0
