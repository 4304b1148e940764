import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from .dependencies import get_lpd_server, get_print_queue_client, get_settings
from .logging_config import setup_logging

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging(settings)

    # Log configuration file information
    config_info = settings.config_file_info
    logging.info(f"Configuration loaded from: {config_info['active_config_file']}")
    logging.info(f"Running on hostname: {config_info['hostname']}")
    if len(config_info["all_available_configs"]) > 1:
        logging.info(
            f"Available config files: {', '.join(config_info['all_available_configs'])}"
        )

    logging.info("LPD Gateway starting up...")
    logging.info(f"Print server: {settings.print_server_url}")
    logging.info(f"Spool directory: {settings.spool_directory or '(system temp)'}")

    lpd_server = get_lpd_server()
    await lpd_server.start()

    yield

    # Shutdown
    logging.info("LPD Gateway shutting down...")
    await lpd_server.stop()
    await get_print_queue_client().close()
    logging.info("LPD server og print queue client stoppet")


# Create FastAPI application
app = FastAPI(
    title="LPD Gateway",
    description="RFC 1179 LPD server der videresender printjobs til en IPP print server",
    version="0.1.0",
    lifespan=lifespan,
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logging.debug(
        f"Incoming request: {request.method} {request.url.path}",
        extra={
            "operation": "http_request",
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        },
    )

    response = await call_next(request)

    logging.debug(
        f"Response: {response.status_code}",
        extra={
            "operation": "http_response",
            "status_code": response.status_code,
            "path": request.url.path,
        },
    )

    return response


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "LPD Gateway er kørende"}


@app.get("/health")
async def health():
    """Detaljeret health check."""
    lpd_server = get_lpd_server()
    return {
        "status": "healthy" if lpd_server.is_running else "degraded",
        "service": "lpd-gateway",
        "print_server_url": settings.print_server_url,
        "lpd": lpd_server.get_statistics(),
    }


if __name__ == "__main__":
    uvicorn.run(
        "lpd_gateway.main:app",
        host=settings.admin_host,
        port=settings.admin_port,
        reload=False,
        log_level="info",
    )
