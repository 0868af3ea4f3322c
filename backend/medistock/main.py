import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import inspect

from medistock.db import Base, engine
from medistock import models  # noqa: F401  (registers tables on Base.metadata)
from medistock.routes.ai_routes import router as ai_router
from medistock.routes.medicine_routes import router as medicine_router


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]

def _env_flag(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _required_tables() -> set[str]:
    return {"catalog_medicines", "stock_items"}


def _assert_schema_ready() -> None:
    inspector = inspect(engine)
    existing = set(inspector.get_table_names())
    missing = sorted(_required_tables() - existing)
    if not missing:
        return
    raise RuntimeError(
        "Database schema is not initialized. "
        "Run `alembic upgrade head` (from the `backend/` folder), "
        f"or set DB_AUTO_CREATE=1 for a quick dev bootstrap. Missing tables: {', '.join(missing)}"
    )


def init_database() -> None:
    auto_create = _env_flag("DB_AUTO_CREATE", default=(engine.dialect.name == "sqlite"))
    if auto_create:
        Base.metadata.create_all(bind=engine)
    else:
        _assert_schema_ready()


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    yield

app = FastAPI(title="MediStock AI Backend", lifespan=lifespan)

cors_origins = _split_csv(os.getenv("CORS_ORIGINS")) or [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ai_router)
app.include_router(medicine_router)


@app.get("/")
def read_root():
    return {"message": "Backend is running"}
