import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smart_queue import services
from smart_queue.api import endpoints
from smart_queue.lifespan import lifespan, load_resource

logger = logging.getLogger(__name__)

app = FastAPI(lifespan=lifespan, title="smart-queue")
app.include_router(endpoints.router)
app.add_middleware(
    CORSMiddleware,
    allow_origins=load_resource().settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(
        jsonable_encoder(endpoints.ErrorMessage(error=message)),
        status_code=status.HTTP_400_BAD_REQUEST,
    )


@app.exception_handler(services.StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: services.StoreUnavailable):
    logger.error("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        jsonable_encoder(endpoints.ErrorMessage(error="Store unavailable")),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
