import logging
import re

import auth
import config
import crud
import database
import models
import schemas
from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

# --- Logging ---
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logger = logging.getLogger("nobull")

# --- DB tables ---
models.Base.metadata.create_all(bind=database.engine)

app = FastAPI(
    title="NoBull",
    description="Nutrition and fitness tracking API: accounts, sessions and short links.",
    version="1.0.0",
)

origins = ["*"] if config.ENVIRONMENT == "dev" else [config.PUBLIC_BASE_URL]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SHORT_CODE_RE = re.compile(r"[A-Za-z0-9]{1,24}")
MIN_PASSWORD_LENGTH = 8
REMEMBER_COOKIE_MAX_AGE = 30 * 24 * 60 * 60


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

# Health check (useful for uptime monitors & load balancers)
@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok", "env": config.ENVIRONMENT}

# ---------- accounts ----------

def _terms_accepted(terms) -> bool:
    if isinstance(terms, bool):
        return terms
    return str(terms or "").strip().lower() in ("on", "true")

def _parse_int(value) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None

@app.post("/sign-up", response_model=schemas.SignUpOut)
def sign_up(body: schemas.SignUpIn, db=Depends(database.get_db)):
    if not body.email or not body.name or not body.password or not _terms_accepted(body.terms):
        raise HTTPException(
            status_code=400,
            detail="All fields are required and you must accept the Terms of Service and Privacy Policy.",
        )
    answer, expected = _parse_int(body.captcha), _parse_int(body.captcha_answer)
    if answer is None or expected is None or answer != expected:
        raise HTTPException(
            status_code=400,
            detail="CAPTCHA verification failed. Please solve the math problem correctly.",
        )
    email = body.email.strip()
    if not EMAIL_RE.match(email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address.")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 8 characters long.")

    if crud.get_user_by_email(db, email):
        raise HTTPException(status_code=409, detail="An account with this email already exists.")

    user = crud.create_user(
        db,
        email=email,
        full_name=body.name.strip(),
        password_hash=auth.hash_password(body.password),
        country=body.country,
    )
    logger.info("Created user id=%s", user.id)
    return {"success": True, "redirect": "/sign-in"}

@app.post("/sign-in", response_model=schemas.SignInOut)
def sign_in(body: schemas.SignInIn, response: Response, db=Depends(database.get_db)):
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required.")
    email = body.email.strip()
    if not EMAIL_RE.match(email):
        raise HTTPException(status_code=400, detail="Please enter a valid email address.")

    user = crud.get_user_by_email(db, email)
    # Same answer for unknown email and wrong password
    if not user or not auth.verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password.")

    token = auth.create_access_token(user.id, user.email, remember=body.remember)
    # Only set secure cookie if HTTPS is configured
    is_https = config.PUBLIC_BASE_URL.startswith("https://")
    response.set_cookie(
        key=config.AUTH_COOKIE_NAME, value=token,
        httponly=True, samesite="lax", secure=is_https, path="/",
        max_age=REMEMBER_COOKIE_MAX_AGE if body.remember else None,
    )
    logger.info("User id=%s signed in (remember=%s)", user.id, body.remember)
    return {
        "success": True,
        "user": user,
        "token": token,
        "redirect": "/dashboard" if user.plan else "/choose-plan",
    }

@app.get("/auth/me", response_model=schemas.MeOut)
def get_me(claims=Depends(auth.get_current_claims), db=Depends(database.get_db)):
    user = crud.get_user_for_claims(db, claims)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return {"user": user}

# Tokens are stateless: logging out only drops the cookie
@app.post("/auth/logout", response_model=schemas.SuccessOut)
def logout(response: Response):
    is_https = config.PUBLIC_BASE_URL.startswith("https://")
    response.delete_cookie(
        config.AUTH_COOKIE_NAME, path="/", httponly=True, samesite="lax", secure=is_https
    )
    return {"success": True}

# ---------- short links ----------

@app.post("/api/short-links", response_model=schemas.ShortenOut)
def create_short_link(body: schemas.ShortenIn, db=Depends(database.get_db), claims=Depends(auth.get_current_claims)):
    result = crud.shorten_url(db, body.original_url)
    if result is None:
        raise HTTPException(status_code=500, detail="Could not create short link")
    logger.info("Short link %s -> %s by user=%s", result.code, body.original_url[:80], claims.user_id)
    return result

@app.get("/api/short-links/{code}/stats", response_model=schemas.ShortLinkStats)
def short_link_stats(code: str, db=Depends(database.get_db), claims=Depends(auth.get_current_claims)):
    link = crud.get_short_link(db, code)
    if not link:
        raise HTTPException(status_code=404, detail="Short link not found")
    return schemas.ShortLinkStats(
        code=link.code,
        original_url=link.original_url,
        click_count=link.click_count,
        created_at=link.created_at,
    )

@app.get("/p", include_in_schema=False)
@app.get("/p/", include_in_schema=False)
def redirect_missing_code():
    raise HTTPException(status_code=400, detail="Invalid short link code")

@app.get("/p/{code}", include_in_schema=False)
def redirect_short_link(code: str, db=Depends(database.get_db)):
    if not SHORT_CODE_RE.fullmatch(code):
        raise HTTPException(status_code=400, detail="Invalid short link format")
    try:
        original_url = crud.get_original_url(db, code)
    except Exception:
        logger.exception("Error resolving short link %s", code)
        raise HTTPException(status_code=500, detail="Internal server error")
    if not original_url:
        raise HTTPException(status_code=404, detail="Short link not found")
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
