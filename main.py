import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

import hostels
import roommates
import users
import views
from config import Settings, load_settings
from database import connect, ensure_indexes
from schemas import first_error

logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes(app.state.db)
    except Exception:
        logger.exception("Error connecting to MongoDB")
        raise
    logger.info("Connected to MongoDB, serving %s mode", "production" if app.state.settings.production else "development")
    yield
    if app.state.client is not None:
        app.state.client.close()


async def http_error(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        message = f"Not Found - {request.url.path}"
    return JSONResponse(status_code=exc.status_code, content={"message": message}, headers=getattr(exc, "headers", None))


async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": first_error(exc.errors())})


async def server_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal Server Error"})


def create_app(settings: Settings, db: Optional[Database] = None) -> FastAPI:
    configure_logging(settings)

    app = FastAPI(title="RoomBuddy API", lifespan=lifespan)
    app.state.settings = settings
    if db is None:
        app.state.client = connect(settings)
        app.state.db = app.state.client[settings.database_name]
    else:
        app.state.client = None
        app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error)
    app.add_exception_handler(RequestValidationError, validation_error)
    app.add_exception_handler(Exception, server_error)

    app.include_router(users.router)
    app.include_router(hostels.router)
    app.include_router(roommates.router)

    if settings.production:
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
        app.include_router(views.router)
    else:
        @app.get("/")
        def root():
            return {"message": "API is running..."}

    return app


app = create_app(load_settings())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
