"""Application wiring: config -> store, collaborators, renderer -> HTTP API.

Boundary note for maintainers:
- Keep this module focused on wiring, not report logic.
- Aggregation belongs in `stats.py`, layout in `report/*`.
- API schemas belong in `api_models.py`.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from . import __version__
from .collaborators import CollaboratorClient
from .config import AppConfig, load_config
from .orchestrator import ReportOrchestrator
from .report.charts import ChartRenderer
from .report_store import ReportStore
from .routes import create_router
from .worker_pool import WorkerPool

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RuntimeState:
    config: AppConfig
    report_store: ReportStore
    worker_pool: WorkerPool
    orchestrator: ReportOrchestrator


def create_app(config_path: Path | None = None) -> FastAPI:
    config = load_config(config_path)

    report_store = ReportStore(config.storage.reports_db_path)
    worker_pool = WorkerPool(
        max_workers=config.reports.chart_workers,
        thread_name_prefix="netreport-chart",
    )
    orchestrator = ReportOrchestrator(
        store=report_store,
        collaborators=CollaboratorClient(config.collaborators),
        charts=ChartRenderer(),
        pool=worker_pool,
        reports_config=config.reports,
    )
    runtime = RuntimeState(
        config=config,
        report_store=report_store,
        worker_pool=worker_pool,
        orchestrator=orchestrator,
    )

    async def stop_runtime() -> None:
        try:
            await asyncio.to_thread(worker_pool.shutdown, True)
        except Exception:
            LOGGER.warning("Error shutting down worker pool", exc_info=True)
        try:
            runtime.report_store.close()
        except Exception:
            LOGGER.warning("Error closing reports DB", exc_info=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        LOGGER.info(
            "netreport %s serving reports from %s", __version__, config.reports.output_dir
        )
        try:
            yield
        finally:
            await stop_runtime()

    app = FastAPI(title="netreport", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime
    app.include_router(create_router(runtime))
    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the netreport server")
    parser.add_argument("--config", type=Path, default=None, help="Path to config YAML")
    args = parser.parse_args()

    runtime_app = create_app(config_path=args.config)
    runtime: RuntimeState = runtime_app.state.runtime
    server = runtime.config.server
    try:
        uvicorn.run(
            runtime_app,
            host=server.host,
            port=server.port,
            log_level=server.log_level,
        )
    except OSError:
        LOGGER.error("Failed to bind to %s:%d.", server.host, server.port, exc_info=True)
        raise


if __name__ == "__main__":
    main()
