import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler

from smokeboard import config
from smokeboard.services.airtable import get_airtable
from smokeboard.services.clerk import get_clerk

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    yield
    # Shutdown: release pooled HTTP connections
    await get_airtable().aclose()
    await get_clerk().aclose()


# Initialize FastAPI app
app = FastAPI(
    title="Smokeboard",
    description="Events and leaderboards for high school BBQ competitions",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(StarletteHTTPException)
async def api_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """API errors use the same {success, error} envelope as API successes."""
    if request.url.path.startswith("/api/"):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
            headers=getattr(exc, "headers", None),
        )
    return await http_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def api_validation_exception_handler(request: Request, exc: RequestValidationError):
    if request.url.path.startswith("/api/"):
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=422,
            content={"success": False, "error": "Invalid request"},
        )
    return await request_validation_exception_handler(request, exc)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


# Include routers
from smokeboard.routers import events, leaderboard, teams, schools, students, stats, users, webhooks, pages

app.include_router(events.router, tags=["events"])
app.include_router(leaderboard.router, tags=["leaderboard"])
app.include_router(teams.router, tags=["teams"])
app.include_router(schools.router, tags=["schools"])
app.include_router(students.router, tags=["students"])
app.include_router(stats.router, tags=["stats"])
app.include_router(users.router, tags=["users"])
app.include_router(webhooks.router, tags=["webhooks"])
app.include_router(pages.router, tags=["pages"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
