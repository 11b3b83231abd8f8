"""
scanlens Backend - FastAPI Server

This server runs as a sidecar next to the scan dashboard and provides API
endpoints for the React frontend to read derived activity views and drive
the issue review workflow.
"""

import argparse
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scanlens import __version__
from scanlens.core.issue_store import IssueLifecycleStore
from scanlens.core.settings import EngineSettings

from .routes import activity, issues


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage server lifecycle: let in-flight issue actions settle on exit."""
    yield
    await app.state.issue_store.drain()


app = FastAPI(
    title="scanlens Backend",
    description="Python backend sidecar for the scan activity dashboard",
    version=__version__,
    lifespan=lifespan,
)

app.state.settings = EngineSettings.from_env()
# The automation executor is attached by the embedding process; until then
# reproduction and remediation requests answer 503.
app.state.issue_store = IssueLifecycleStore(settings=app.state.settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost",
        "http://127.0.0.1",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(activity.router, prefix="/api/activity", tags=["activity"])
app.include_router(issues.router, prefix="/api/issues", tags=["issues"])


@app.get("/health")
def health():
    """Health check endpoint"""
    return {"status": "ok"}


@app.get("/")
def root():
    """Root endpoint with API info"""
    return {
        "name": "scanlens Backend",
        "version": __version__,
        "docs": "/docs",
    }


def main():
    """Main entry point for the sidecar"""
    parser = argparse.ArgumentParser(description="scanlens Backend Server")
    parser.add_argument(
        "--port",
        type=int,
        default=9876,
        help="Port to run the server on (default: 9876)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    args = parser.parse_args()

    print(f"Starting scanlens backend on {args.host}:{args.port}")

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["access"]["fmt"] = "%(asctime)s %(levelprefix)s %(client_addr)s - \"%(request_line)s\" %(status_code)s"
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s %(levelprefix)s %(message)s"
    log_config["formatters"]["access"]["datefmt"] = "%H:%M:%S"
    log_config["formatters"]["default"]["datefmt"] = "%H:%M:%S"

    # A single worker: the issue ledger lives in process memory.
    uvicorn.run(app, host=args.host, port=args.port, log_level="info", log_config=log_config)


if __name__ == "__main__":
    main()
