"""
AutoRig Service - Main Entry Point

Usage:
    autorig-server                          # Run with default settings
    autorig-server --host 0.0.0.0           # Run on specific host
    autorig-server --port 3001              # Run on specific port
    autorig-server --reload                 # Run with auto-reload (development)
    autorig-server --process image.png      # Process one file and print JSON
"""

import sys
import json
import argparse
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Environment must be loaded before settings are first imported
load_dotenv()

from autorig.core.logger import get_logger, resolve_level, setup_logger
from autorig.core.config import settings
from autorig.core.exceptions import AutoRigError, UploadError
from autorig.core.state import app_state

logger = get_logger("main")

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from autorig.api import api_router
from autorig.api.routes import build_response
from autorig.ml.client import build_detection_client
from autorig.pipelines import process_image
from autorig.schemas import parse_client_analysis
from autorig.utils.image_loader import load_from_path


# =============================================================================
# LIFESPAN CONTEXT MANAGER
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the detection client on startup and resets state on shutdown.
    """
    logger.info("Starting AutoRig API...")

    app_state.detection_client = build_detection_client(settings.detector)
    app_state.initialized = True

    if app_state.detection_available:
        logger.info(f"Live detection enabled: {', '.join(app_state.detection_client.kinds)}")
    else:
        logger.warning("Live detection unavailable, serving fallback detection only")

    yield

    logger.info("Shutting down AutoRig API...")
    app_state.reset()
    logger.info("Shutdown complete")


# =============================================================================
# CREATE FASTAPI APP
# =============================================================================

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    app = FastAPI(
        title=settings.api.title,
        version=settings.api.version,
        description=settings.api.description,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    app.include_router(api_router)

    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError):
        logger.warning(f"Rejected upload: {exc}")
        return JSONResponse(
            status_code=400,
            content={"error": exc.message, "type": type(exc).__name__, "details": exc.details},
        )

    @app.exception_handler(AutoRigError)
    async def autorig_error_handler(request: Request, exc: AutoRigError):
        logger.error(f"Unhandled {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": str(exc), "type": type(exc).__name__, "fallback": True},
        )

    return app


app = create_app()


# =============================================================================
# CLI
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="AutoRig segmentation and rigging service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  autorig-server                          # Run with defaults
  autorig-server --host 0.0.0.0 --port 3001
  autorig-server --reload                 # Development mode
  autorig-server --process portrait.png   # One-off processing, JSON to stdout
        """
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.api.host,
        help=f"Host to bind to (default: {settings.api.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.api.port,
        help=f"Port to bind to (default: {settings.api.port})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.logging.log_level.lower(),
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help=f"Log level (default: {settings.logging.log_level.lower()})",
    )
    parser.add_argument(
        "--process",
        metavar="IMAGE",
        help="Process a single image file and print the result as JSON",
    )
    parser.add_argument(
        "--analysis",
        metavar="JSON_FILE",
        help="Frontend analysis report to use with --process",
    )

    return parser


def print_startup_info(host: str, port: int, workers: int, reload: bool, log_level: str) -> None:
    """Print summary of server startup parameters."""
    logger.info("=" * 60)
    logger.info("AutoRig Segmentation & Rigging Service")
    logger.info("=" * 60)
    logger.info(f"Host:        {host}")
    logger.info(f"Port:        {port}")
    logger.info(f"Workers:     {workers}")
    logger.info(f"Reload:      {reload}")
    logger.info(f"Log Level:   {log_level}")
    logger.info("=" * 60)
    logger.info(f"API: http://{host}:{port}")
    logger.info(f"Docs: http://{host}:{port}/docs")
    logger.info(f"Health: http://{host}:{port}/api/v1/health")
    logger.info("Press Ctrl+C to stop")


def run_server(host: str, port: int, workers: int, reload: bool, log_level: str) -> None:
    """Start the uvicorn server with the desired settings."""
    uvicorn.run(
        "autorig.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1 if reload else workers,
        log_level=log_level,
        access_log=True,
    )


def process_file(image_path: str, analysis_path: str = None) -> int:
    """Run the pipeline on a local file and print the response JSON."""
    try:
        contents, filename = load_from_path(image_path)
        client_analysis = None
        if analysis_path:
            with open(analysis_path, encoding="utf-8") as f:
                client_analysis = parse_client_analysis(f.read())
        result = process_image(
            contents,
            filename,
            client_analysis,
            build_detection_client(settings.detector),
        )
    except (AutoRigError, OSError) as e:
        logger.error(f"Processing failed: {e}")
        return 1

    print(json.dumps(build_response(result).model_dump(), indent=2))
    return 0


def main() -> int:
    """
    Main entry point for the AutoRig service.

    Returns:
        0 = success, 1 = failure
    """
    parser = create_parser()
    args = parser.parse_args()

    # uvicorn's "trace" level maps to INFO for our own loggers
    setup_logger(settings.logging.log_file, resolve_level(args.log_level))

    if args.process:
        return process_file(args.process, args.analysis)

    if args.reload and args.workers > 1:
        logger.warning("--reload not compatible with multiple workers. Using 1 worker.")
        args.workers = 1

    print_startup_info(args.host, args.port, args.workers, args.reload, args.log_level)

    try:
        run_server(args.host, args.port, args.workers, args.reload, args.log_level)
        return 0
    except KeyboardInterrupt:
        logger.info("Shutting down server...")
        return 0
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
