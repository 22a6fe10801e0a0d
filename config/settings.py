import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "")
    return int(value) if value.isdigit() else default


@dataclass
class EngineSettings:
    host: str = "0.0.0.0"
    port: int = 3000
    nodes_dir: str = "./nodes"
    nexus_dir: str = "./nexus"
    node_host: str = "localhost"
    node_base_port: int = 3001
    sort_node_dirs: bool = False
    scheduler: str = "sequential"
    health_timeout: float = 5.0
    log_level: str = "INFO"


def load_settings() -> EngineSettings:
    """
    Loads engine settings from environment variables (and a .env file, if any).
    """
    load_dotenv()

    defaults = EngineSettings()
    try:
        health_timeout = float(os.getenv("HEALTH_TIMEOUT", defaults.health_timeout))
    except ValueError:
        health_timeout = defaults.health_timeout

    return EngineSettings(
        host=os.getenv("HOST", defaults.host),
        port=_env_int("PORT", defaults.port),
        nodes_dir=os.getenv("NODES_DIR", defaults.nodes_dir),
        nexus_dir=os.getenv("NEXUS_DIR", defaults.nexus_dir),
        node_host=os.getenv("NODE_HOST", defaults.node_host),
        node_base_port=_env_int("NODE_BASE_PORT", defaults.node_base_port),
        sort_node_dirs=_env_bool("SORT_NODE_DIRS", defaults.sort_node_dirs),
        scheduler=os.getenv("SCHEDULER", defaults.scheduler),
        health_timeout=health_timeout,
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )
