# dwreport/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dwreport.api.v1.api import api_router
from dwreport.db import session
from dwreport.db.models import Base

# Import the specific router from the auth endpoint file
from dwreport.api.v1.endpoints import auth

logger = logging.getLogger("dwreport")


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=session.engine)
    yield


app = FastAPI(title="Daily Work Report API", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Malformed input is the caller's to fix; report it as a plain 400.
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_errors(exc)},
    )


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Unexpected error"})


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


# Include the main router for all routes prefixed with /api/v1
app.include_router(api_router, prefix="/api/v1")

# Include the auth router separately for the /auth prefix
app.include_router(auth.router, prefix="/auth")


@app.get("/")
def read_root():
    return {"message": "Welcome to the Daily Work Report API"}
