import logging
import time
from contextlib import asynccontextmanager
from typing import List, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import PyMongoError

import auth
import catalog
import database
import orders
from config import settings
from database import get_db
from errors import DatabaseError, DatabaseUnavailableError, PharmacyError, ValidationFailedError
from logs import configure_logging
from schemas import (
    CreateOrderRequest,
    LoginRequest,
    Medicine,
    MedicineUpdate,
    RegisterRequest,
    UpdateOrderStatusRequest,
)
from stats import admin_stats

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_json)
    if database.db is not None:
        database.ensure_indexes(database.db)
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; API will answer 503")
    yield


app = FastAPI(title="Online Pharmacy API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s -> %s (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        extra={"request_id": request_id, "status": response.status_code},
    )
    return response


# --- Global Exception Handler ---

@app.exception_handler(PharmacyError)
async def pharmacy_error_handler(request: Request, exc: PharmacyError) -> JSONResponse:
    """Map PharmacyError subclasses to their HTTP status and error code."""
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(level, "request_failed", extra={"error": f"{exc.code}: {exc}", "status": exc.status_code})
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__, "code": exc.code},
    )


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    """Database failures outside the stock paths get the same body as DatabaseError."""
    logger.error("database_error", extra={"error": str(exc), "status": 500}, exc_info=exc)
    err = DatabaseError(f"{request.method} {request.url.path}", str(exc))
    return JSONResponse(
        status_code=err.status_code,
        content={"detail": str(err), "error_type": type(err).__name__, "code": err.code},
    )


def _describe(error: dict) -> str:
    where = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
    return f"{where}: {error.get('msg')}" if where else str(error.get("msg"))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request bodies and parameters that fail pydantic validation (422)."""
    errors = exc.errors()
    logger.info("request_invalid", extra={"error": "; ".join(_describe(e) for e in errors), "status": 422})
    return JSONResponse(
        status_code=422,
        content={
            "detail": _describe(errors[0]) if errors else "Invalid request",
            "error_type": ValidationFailedError.__name__,
            "code": ValidationFailedError.code,
            "errors": jsonable_encoder(errors),
        },
    )


# -----------------------------
# Dependencies
# -----------------------------

def current_user(
    authorization: Optional[str] = Header(default=None),
    db: Database = Depends(get_db),
) -> dict:
    return auth.user_from_authorization(db, authorization)


def admin_user(user: dict = Depends(current_user)) -> dict:
    return auth.ensure_admin(user)


# -----------------------------
# Response models
# -----------------------------

class AuthResponse(BaseModel):
    user: dict
    token: str


class StatsResponse(BaseModel):
    total_orders: int
    total_medicines: int
    total_users: int
    pending_orders: int


class MessageResponse(BaseModel):
    message: str


# Healthcheck
@app.get("/")
def read_root():
    return {"message": "Online Pharmacy Backend Running"}


@app.get("/api/health")
def health_check():
    response = {"status": "ok", "database": "not configured"}
    try:
        get_db().list_collection_names()
        response["database"] = "connected"
    except DatabaseUnavailableError:
        pass
    except PyMongoError as e:
        response["status"] = "degraded"
        response["database"] = f"error: {str(e)[:80]}"
    return response


# -----------------------------
# Auth
# -----------------------------

@app.post("/api/auth/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    return auth.register(db, payload)


@app.post("/api/auth/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    return auth.login(db, payload)


@app.get("/api/auth/me")
def me(user: dict = Depends(current_user)):
    return auth.public_user(user)


# -----------------------------
# Catalog
# -----------------------------

@app.get("/api/medicines")
def list_medicines(search: Optional[str] = None, category: Optional[str] = None, db: Database = Depends(get_db)):
    return catalog.search_medicines(db, search, category)


@app.get("/api/medicines/{medicine_id}")
def get_medicine(medicine_id: str, db: Database = Depends(get_db)):
    return catalog.get_medicine(db, medicine_id)


@app.post("/api/medicines", status_code=201)
def add_medicine(medicine: Medicine, admin: dict = Depends(admin_user), db: Database = Depends(get_db)):
    return catalog.create_medicine(db, medicine)


@app.put("/api/medicines/{medicine_id}")
def edit_medicine(
    medicine_id: str,
    changes: MedicineUpdate,
    admin: dict = Depends(admin_user),
    db: Database = Depends(get_db),
):
    return catalog.update_medicine(db, medicine_id, changes)


@app.delete("/api/medicines/{medicine_id}", response_model=MessageResponse)
def remove_medicine(medicine_id: str, admin: dict = Depends(admin_user), db: Database = Depends(get_db)):
    catalog.delete_medicine(db, medicine_id)
    return MessageResponse(message="Medicine deleted successfully")


@app.get("/api/categories", response_model=List[str])
def list_categories(db: Database = Depends(get_db)):
    return catalog.list_categories(db)


# -----------------------------
# Orders
# -----------------------------

@app.post("/api/orders", status_code=201)
def create_order(payload: CreateOrderRequest, user: dict = Depends(current_user), db: Database = Depends(get_db)):
    return orders.create_order(db, user, payload)


@app.get("/api/orders")
def list_orders(user: dict = Depends(current_user), db: Database = Depends(get_db)):
    return orders.list_orders(db, user)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, user: dict = Depends(current_user), db: Database = Depends(get_db)):
    return orders.get_order(db, order_id, user)


@app.put("/api/orders/{order_id}/status")
def update_order_status(
    order_id: str,
    payload: UpdateOrderStatusRequest,
    user: dict = Depends(current_user),
    db: Database = Depends(get_db),
):
    return orders.transition_order(db, order_id, user, payload.status, payload.rejection_reason)


# -----------------------------
# Admin
# -----------------------------

@app.get("/api/admin/stats", response_model=StatsResponse)
def get_stats(admin: dict = Depends(admin_user), db: Database = Depends(get_db)):
    return admin_stats(db)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
