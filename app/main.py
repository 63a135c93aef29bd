import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from app.config import settings
from app.db import check_connection, engine
from app.routers import analytics, metadata

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
)

logger = logging.getLogger('app')


@asynccontextmanager
async def lifespan(_: FastAPI):
    await check_connection()
    yield
    await engine.dispose()


app = FastAPI(title='Restaurant Analytics API', lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=['GET', 'POST'],
    allow_headers=['Content-Type'],
)


@app.middleware('http')
async def log_requests(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    duration = round((time.perf_counter() - start_time) * 1000, 2)
    logger.info('%s %s Status: %s Time: %sms', request.method, request.url.path, response.status_code, duration)
    return response


app.include_router(metadata.router, prefix=settings.api_prefix)
app.include_router(analytics.router, prefix=settings.api_prefix)


@app.get('/health', response_class=PlainTextResponse)
def health() -> str:
    return 'OK'
