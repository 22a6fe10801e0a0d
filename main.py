"""
Entrypoint for the node graph engine.

Usage examples:
    python main.py
    python main.py --port 3000 --nodes-dir ./nodes --nexus-dir ./nexus
    python main.py --scan
    python main.py --scheduler levels --sort-node-dirs

Default mode discovers the worker nodes and serves the HTTP API with Uvicorn.
``--scan`` only lists the worker directories that contain a descriptor.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import List, Optional

import uvicorn

from config.settings import EngineSettings, load_settings
from core.discovery import DiscoveryService
from core.graph_executor import SCHEDULERS
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None, defaults: Optional[EngineSettings] = None) -> argparse.Namespace:
    defaults = defaults or load_settings()
    parser = argparse.ArgumentParser(description="Discover worker nodes and serve the graph engine API")
    parser.add_argument("--host", default=defaults.host, help=f"Listen host (default: {defaults.host})")
    parser.add_argument("--port", type=int, default=defaults.port, help=f"Listen port (default: {defaults.port})")
    parser.add_argument("--nodes-dir", default=defaults.nodes_dir, help=f"Worker root directory (default: {defaults.nodes_dir})")
    parser.add_argument("--nexus-dir", default=defaults.nexus_dir, help=f"Workspace directory (default: {defaults.nexus_dir})")
    parser.add_argument("--node-base-port", type=int, default=defaults.node_base_port, help=f"First port assigned to workers (default: {defaults.node_base_port})")
    parser.add_argument("--scheduler", choices=sorted(SCHEDULERS), default=defaults.scheduler, help=f"Execution scheduler (default: {defaults.scheduler})")
    parser.add_argument("--sort-node-dirs", action="store_true", default=defaults.sort_node_dirs, help="Assign worker ports in directory name order")
    parser.add_argument("--log-level", default=defaults.log_level, help=f"Log level (default: {defaults.log_level})")
    parser.add_argument("--scan", action="store_true", help="List worker directories and exit")
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace, base: EngineSettings) -> EngineSettings:
    return replace(
        base,
        host=args.host,
        port=args.port,
        nodes_dir=args.nodes_dir,
        nexus_dir=args.nexus_dir,
        node_base_port=args.node_base_port,
        scheduler=args.scheduler,
        sort_node_dirs=args.sort_node_dirs,
        log_level=args.log_level.upper(),
    )


def run_scan(settings: EngineSettings) -> int:
    discovery = DiscoveryService(settings.nodes_dir, base_port=settings.node_base_port)
    paths = discovery.scan_node_paths()
    for path in paths:
        print(path)
    print(f"{len(paths)} worker director{'y' if len(paths) == 1 else 'ies'} found in {settings.nodes_dir}")
    return 0


def run_server(settings: EngineSettings) -> int:
    # Imported late so that --scan never builds the application
    from server.server import create_app

    logger.info("Starting node graph engine")
    app = create_app(settings)
    logger.info(f"Starting API server on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    base = load_settings()
    args = parse_args(argv, defaults=base)
    settings = settings_from_args(args, base)
    setup_logging(settings.log_level)

    if args.scan:
        return run_scan(settings)
    return run_server(settings)


if __name__ == "__main__":
    raise SystemExit(main())
