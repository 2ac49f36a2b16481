from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from quizdrill.database import get_db
from quizdrill.schemas import AvailabilityOut, RegisterIn, SignInIn, SignInOut
from quizdrill.services.accounts import (
    AccountExistsError,
    authenticate,
    check_availability,
    register_user,
    valid_email,
    valid_username,
)
from quizdrill.services.interaction_logger import RATE_LIMITED, log_interaction
from quizdrill.services.rate_limiter import (
    SlidingWindowLimiter,
    register_limiter,
    sign_in_limiter,
)


router = APIRouter(prefix="/api/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 12
MAX_PASSWORD_LENGTH = 128


def client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or "unknown"
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(limiter: SlidingWindowLimiter, message: str):
    """Dependency that counts the attempt before the body is even looked at."""

    def _check(request: Request) -> None:
        key = client_address(request)
        result = limiter.check(key)
        if not result.allowed:
            log_interaction(
                event=RATE_LIMITED,
                limiter=limiter.name,
                client=key,
                retry_after_seconds=result.retry_after_seconds,
            )
            raise HTTPException(
                status_code=429,
                detail=message,
                headers={"Retry-After": str(result.retry_after_seconds)},
            )

    return _check


@router.post(
    "/sign-in",
    response_model=SignInOut,
    dependencies=[Depends(rate_limit(sign_in_limiter, "Too many sign-in attempts. Please try again later."))],
)
def sign_in(body: SignInIn, db: Session = Depends(get_db)):
    user = None
    if body.username and body.password:
        user = authenticate(db, body.username, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid username or password.")
    return {"user_id": user.id, "username": user.username}


@router.post(
    "/register",
    status_code=201,
    dependencies=[Depends(rate_limit(register_limiter, "Too many registration attempts. Please try again later."))],
)
def register(body: RegisterIn, db: Session = Depends(get_db)):
    if not (
        valid_username(body.username)
        and valid_email(body.email)
        and MIN_PASSWORD_LENGTH <= len(body.password) <= MAX_PASSWORD_LENGTH
    ):
        raise HTTPException(status_code=400, detail="Registration failed. Please check your input.")

    try:
        register_user(db, body.username, body.email, body.password)
    except AccountExistsError:
        raise HTTPException(
            status_code=409,
            detail="Registration is currently unavailable. Please try again later.",
        )
    return {"message": "Account created."}


@router.get("/check-availability", response_model=AvailabilityOut)
def availability(
    field: str = Query(...),
    value: str = Query(""),
    db: Session = Depends(get_db),
):
    try:
        available = check_availability(db, field, value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid field.")
    return {"available": available}
