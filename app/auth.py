import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import config
import schemas
from fastapi import HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError, jwt

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode()[:BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()

def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw((password or "").encode()[:BCRYPT_MAX_BYTES], password_hash.encode())
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False

def create_access_token(user_id: int, email: str, remember: bool = False) -> str:
    minutes = config.REMEMBER_TOKEN_EXPIRE_MINUTES if remember else config.ACCESS_TOKEN_EXPIRE_MINUTES
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)

def verify_token(token: str | None) -> schemas.SessionClaims | None:
    """Decode a signed session token.

    Returns the claims for a validly signed, unexpired token and ``None`` for
    anything else. The reason is logged but never surfaced to the caller.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except ExpiredSignatureError:
        logger.info("JWT verification failed: token expired")
        return None
    except JWTError as e:
        logger.info("JWT verification failed: %s", e)
        return None

    sub, email = payload.get("sub"), payload.get("email")
    if not sub or not email:
        logger.info("JWT verification failed: missing claims")
        return None
    try:
        return schemas.SessionClaims(user_id=int(sub), email=email)
    except ValueError:
        logger.info("JWT verification failed: non-integer subject %r", sub)
        return None

def extract_token(request: Request) -> str | None:
    # Authorization header wins over the cookie
    header = request.headers.get("Authorization")
    if header and header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return request.cookies.get(config.AUTH_COOKIE_NAME) or None

def get_current_claims(request: Request) -> schemas.SessionClaims:
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    claims = verify_token(token)
    if claims is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return claims
