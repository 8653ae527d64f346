# roadside_assist/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import config
from .database import Base, engine, get_db, ping
from .errors import AppError
from .routers import admin, auth, notifications, requests, workers, workshops

logging.basicConfig(level=config.log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# ────────────────────────────── DATABASE ──────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()

app = FastAPI(
    title="Roadside Assist API",
    description="Roadside assistance requests, nearby workshops and worker dispatch",
    version="1.0.0",
    lifespan=lifespan,
)

# ────────────────────────────── CORS ──────────────────────────────

origins = config.cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ────────────────────────────── ERRORS ──────────────────────────────

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"detail": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logging.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

# ────────────────────────────── ROUTES ──────────────────────────────

@app.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        return {"ok": ping(db)}
    except SQLAlchemyError:
        logging.exception("Health check failed")
        return JSONResponse(status_code=500, content={"ok": False, "error": "DB unreachable"})


app.include_router(auth.router)
app.include_router(workshops.router)
app.include_router(requests.router)
app.include_router(workers.router)
app.include_router(admin.router)
app.include_router(notifications.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("roadside_assist.main:app", host="0.0.0.0", port=config.port())
