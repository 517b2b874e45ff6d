"""HTTP server for switching LAN hosts between WAN uplinks.

Endpoints:
- GET /switch?ip=<addr[/prefix]>&nic=<wan>: move one LAN host to a WAN
- GET /status: current host overrides and interface configuration
- GET /health: liveness and override count

On startup the whole LAN subnet is bound to the primary WAN; if that fails
the server refuses to start.
"""
import argparse
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .config import RouterConfig, ConfigError, load_config
from .ports import IpRouteCommandPort, RoutingCommandPort
from .route_store import RouteStateStore
from .routing_engine import (
    AddressSpec,
    Bootstrapper,
    BootstrapError,
    CommandFailed,
    CommandTimeout,
    InvalidAddress,
    ReconciliationEngine,
    RoutingError,
)
from .utils import ChangeTracker, setup_audit_logging, setup_logging

logger = logging.getLogger(__name__)


class ApiResponse(BaseModel):
    """Response body for /switch."""
    status: str
    message: str


class StatusResponse(BaseModel):
    """Response body for /status."""
    mappings: dict[str, str]
    config: dict[str, str]


def error_status(error: RoutingError) -> int:
    """HTTP status for a routing error."""
    if isinstance(error, CommandTimeout):
        return 504
    if isinstance(error, CommandFailed):
        return 500
    return 400


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(status="error", message=message).model_dump(),
    )


def create_app(
    config: RouterConfig,
    port: Optional[RoutingCommandPort] = None,
    bootstrapper: Optional[Bootstrapper] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Router configuration
        port: Command port (defaults to iproute2)
        bootstrapper: Startup provisioning (defaults to one using ``port``)

    Returns:
        FastAPI app; bootstrap runs in its lifespan
    """
    port = port or IpRouteCommandPort(config.ip_binary, config.command_timeout)
    tracker = ChangeTracker()
    store = RouteStateStore()
    engine = ReconciliationEngine(config, port, store, tracker)
    bootstrapper = bootstrapper or Bootstrapper(config, port, tracker)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await bootstrapper.run()
        except BootstrapError as e:
            logger.critical(f"Failed to initialize: {e}")
            raise
        yield

    app = FastAPI(title="wan-switch", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.state.engine = engine

    @app.get("/switch", response_model=ApiResponse)
    async def switch(ip: Optional[str] = None, nic: Optional[str] = None):
        """Move one LAN host to the named WAN."""
        def reject(message: str) -> JSONResponse:
            # Rejected before reaching the engine, audited here
            tracker.log_change(
                operation="switch",
                parameters={"ip": ip, "nic": nic},
                success=False,
                error=message,
            )
            return error_response(message, 400)

        if not ip:
            return reject("missing required query parameter 'ip'")
        if not nic:
            return reject("missing required query parameter 'nic'")

        try:
            address = AddressSpec.parse(ip)
        except InvalidAddress as e:
            return reject(str(e))

        try:
            result = await engine.apply(address, nic)
        except RoutingError as e:
            return error_response(str(e), error_status(e))

        return ApiResponse(status="success", message=result.message)

    @app.get("/status", response_model=StatusResponse)
    async def status():
        """Current overrides; hosts not listed use the primary WAN."""
        snapshot = await store.snapshot()
        return StatusResponse(
            mappings={ip: assignment.wan for ip, assignment in snapshot.items()},
            config=config.interface_map(),
        )

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__, "overrides": len(store)}

    return app


def main() -> int:
    """Run the wan-switch HTTP server."""
    parser = argparse.ArgumentParser(
        description="Per-host WAN selection via policy routing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
    WAN0, WAN1, ... WANn   Physical interface per WAN slot (default eth0, eth1)
    LAN                    LAN interface (default eth2)
    WAN_SWITCH_CONFIG      Optional YAML configuration file
    WAN_SWITCH_LOG_LEVEL   DEBUG, INFO, WARNING, ERROR
""",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--host", help="Listen address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Listen port (default: 32599)")
    parser.add_argument("--log-level", help="Console log level")
    args = parser.parse_args()

    setup_logging(args.log_level)
    setup_audit_logging()

    try:
        config = load_config(args.config)
    except (ConfigError, OSError) as e:
        logger.critical(f"Invalid configuration: {e}")
        return 1

    host = args.host or config.host
    listen_port = args.port or config.port

    logger.info("Configuration:")
    for name, iface in config.interface_map().items():
        logger.info(f"  {name}: {iface}")

    app = create_app(config)

    logger.info(f"Server listening on http://{host}:{listen_port} => {__version__}")
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=host,
        port=listen_port,
        log_config=None,
        lifespan="on",
    ))
    server.run()

    # uvicorn returns normally when lifespan startup fails
    if not server.started:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
