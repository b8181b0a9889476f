from contextlib import asynccontextmanager

from fastapi import FastAPI, APIRouter, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from busnet.config import configure_logging
from busnet.db import engine, Base
from busnet import models, schemas  # Import models to register them with Base
from busnet.api import crud


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler - runs on startup and shutdown."""
    # Startup: Create database tables
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Bus Network Admin API",
    description="Back office data for cities, stations, lines, fleet, trips and bookings",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap HTTP errors in the response envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"data": None, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors into one envelope message."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return JSONResponse(
        status_code=422,
        content={"data": None, "error": "; ".join(messages) or "Invalid request"}
    )


api_router = APIRouter(prefix="/api")
for router in crud.routers:
    api_router.include_router(router)


@api_router.get("/health", response_model=schemas.Envelope)
def health_check():
    """Health check endpoint."""
    return schemas.Envelope(data=schemas.HealthCheckResponse(status="healthy").model_dump())


app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn
    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=3001)
