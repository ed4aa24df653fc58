"""API server command for WealthSync CLI."""

import logging

import typer
import uvicorn

app = typer.Typer(help="Run the HTTP API")
logger = logging.getLogger(__name__)


@app.command("api")
def serve_api(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
) -> None:
    """Serve the cron, webhook and sync API with uvicorn."""
    logger.info(f"🚀 Starting WealthSync API on http://{host}:{port}")
    uvicorn.run(
        "wealthsync.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )
