import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from cache import close_redis
from database import create_tables
from errors import register_exception_handlers
from routers import author, book


def configure_logging():
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if os.getenv("DB_CREATE_ALL") == "1":
        await create_tables()
    yield
    await close_redis(app)


configure_logging()

app = FastAPI(title="Library API", lifespan=lifespan)

origins = [
    "http://127.0.0.1:5500",
    "http://localhost:5500",
    "http://127.0.0.1:8000",
    "http://localhost:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(author.router)
app.include_router(book.router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
