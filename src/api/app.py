"""
HTTP trigger for scheduled passes.

``GET /api/cron/{password}`` starts a pass in the background and answers
immediately; the pass result is only visible in the logs.
"""

import asyncio
import secrets
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.config.settings import Settings
from src.logger import setup_logging
from src.scheduler import CronScheduler


logger = setup_logging(logger_name="api", log_file="logs/api.log")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def create_app(scheduler: CronScheduler, settings: Optional[Settings] = None) -> FastAPI:
    """
    Create the trigger application.

    Args:
        scheduler: Scheduler whose ``run`` is started by the trigger
        settings: Provides the cron password (defaults to the environment)
    """
    settings = settings or Settings.from_env()
    app = FastAPI(title="Cron trigger")
    app.state.scheduler = scheduler
    app.state.tasks = set()

    @app.get("/api/cron/{password}")
    async def trigger_cron(password: str, request: Request):
        logger.info(f"Cron trigger: {request.url.path.rsplit('/', 1)[0]}/***")
        if not secrets.compare_digest(
            password.encode("utf-8"), settings.cron_password.encode("utf-8")
        ):
            return JSONResponse(
                status_code=401,
                content={"success": False, "message": "Unauthorized"},
            )

        logger.info(f"Cron job triggered: {_now_iso()}")
        task = asyncio.create_task(app.state.scheduler.run(), name="cron-pass")
        app.state.tasks.add(task)
        task.add_done_callback(app.state.tasks.discard)

        return {
            "success": True,
            "message": "Cron job executed successfully",
            "timestamp": _now_iso(),
        }

    return app
