import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from unilibrary.api import (announcements, auth, books, borrow_records, cctv_events, departments, fingerprints,
                            librarians, library_entries, library_hours, reports, scan, students)
from unilibrary.core import database
from unilibrary.core.config import settings
from unilibrary.core.errors import LibraryError
from unilibrary.scheduler import AutoExitScheduler

logging.basicConfig(level=settings.log_level,
                    format="%(asctime)s %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger("unilibrary")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Creating database tables (if not present)...")
    database.Base.metadata.create_all(bind=database.engine)
    scheduler = None
    if settings.auto_exit_enabled:
        scheduler = AutoExitScheduler()
        scheduler.start()
    try:
        yield
    finally:
        if scheduler is not None:
            await scheduler.stop()


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


for module in (auth, librarians, books, students, departments, borrow_records, library_entries, scan,
               library_hours, announcements, cctv_events, fingerprints, reports):
    app.include_router(module.router)


@app.get("/health")
def health():
    return {"status": "ok", "time": datetime.now().isoformat()}
