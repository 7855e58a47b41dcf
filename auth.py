import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from config import settings
from database import create_document, serialize, to_object_id
from errors import (
    AuthenticationError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    PermissionDeniedError,
)
from schemas import LoginRequest, RegisterRequest, User

logger = logging.getLogger(__name__)

pwd = CryptContext(schemes=["argon2"], deprecated="auto")

PUBLIC_USER_FIELDS = ("_id", "name", "email", "role", "phone", "address")


def hash_password(p: str) -> str:
    return pwd.hash(p)


def verify_password(p: str, h: str) -> bool:
    return pwd.verify(p, h)


def create_token(user_id: str) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {"sub": str(user_id), "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str) -> Optional[str]:
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except JWTError:
        return None
    sub = data.get("sub")
    return str(sub) if sub else None


def public_user(doc: dict) -> dict:
    """User fields safe to send to clients (never the hash)."""
    out = serialize(doc)
    return {k: out.get(k) for k in PUBLIC_USER_FIELDS if k in out}


def register(db: Database, payload: RegisterRequest) -> dict:
    email = payload.email.lower()
    if db["user"].find_one({"email": email}):
        raise EmailAlreadyRegisteredError(email)

    user = User(
        name=payload.name,
        email=email,
        password=hash_password(payload.password),
        phone=payload.phone,
        address=payload.address,
        role="user",
    )
    try:
        user_id = create_document(db, "user", user)
    except DuplicateKeyError:
        # lost a race with a concurrent signup for the same address
        raise EmailAlreadyRegisteredError(email)

    logger.info("user_registered", extra={"user_id": user_id})
    doc = db["user"].find_one({"_id": to_object_id(user_id)})
    return {"user": public_user(doc), "token": create_token(user_id)}


def login(db: Database, payload: LoginRequest) -> dict:
    doc = db["user"].find_one({"email": payload.email.lower()})
    if not doc or not verify_password(payload.password, doc["password"]):
        raise InvalidCredentialsError()
    return {"user": public_user(doc), "token": create_token(str(doc["_id"]))}


def user_from_authorization(db: Database, authorization: Optional[str]) -> dict:
    """Resolve a ``Bearer <token>`` header to the stored user document."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Missing Bearer token")

    token = authorization.split(" ", 1)[1].strip()
    uid = decode_token(token)
    oid = to_object_id(uid) if uid else None
    if oid is None:
        raise AuthenticationError("Invalid token")

    user = db["user"].find_one({"_id": oid})
    if not user:
        raise AuthenticationError("Invalid token")
    return user


def is_admin(user: dict) -> bool:
    return user.get("role") == "admin"


def ensure_admin(user: dict) -> dict:
    if not is_admin(user):
        raise PermissionDeniedError("Admin access required")
    return user
