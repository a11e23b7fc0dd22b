"""FastAPI application with CORS, lifespan, routes and error mapping."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.deps import get_repository
from .api.routes import router
from .config import settings
from .engine.launcher import WorkflowStateError
from .engine.planner import PlanValidationError


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: executor discovery and schema creation
    from . import tasks  # noqa: F401
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    get_repository()
    yield


app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(PlanValidationError)
async def plan_validation_handler(request: Request, exc: PlanValidationError):
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.exception_handler(WorkflowStateError)
async def workflow_state_handler(request: Request, exc: WorkflowStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(LookupError)
async def not_found_handler(request: Request, exc: LookupError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def bad_request_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})
