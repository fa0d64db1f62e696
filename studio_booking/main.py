import logging

from fastapi import FastAPI

from .config import AUTO_CREATE_SCHEMA, LOG_LEVEL
from .container import Studio
from .db import SessionLocal, init_db
from .middleware import RequestLoggingMiddleware
from .publisher import RabbitPublisher
from .redis_client import redis_client
from .routes import router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")

app = FastAPI(title="Studio Booking Service")
app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)

app.state.studio = Studio(SessionLocal, redis_client, RabbitPublisher())


@app.get("/health")
async def health():
    return {"status": "ok", "service": "studio-booking"}


@app.on_event("startup")
async def startup():
    if AUTO_CREATE_SCHEMA:
        await init_db()
    await app.state.studio.start()


@app.on_event("shutdown")
async def shutdown():
    await app.state.studio.close()
