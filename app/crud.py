import logging
import secrets
from datetime import datetime, timezone
from urllib.parse import urlsplit, urlunsplit

import config
import models
import schemas
from sqlalchemy import func, insert, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# No 0/O, 1/I/l: codes get read aloud and typed by hand
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
CODE_LENGTH = 8
MAX_CODE_ATTEMPTS = 10

# ---------- users ----------

def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(func.lower(models.User.email) == email.lower()).first()

def get_user_for_claims(db: Session, claims: schemas.SessionClaims) -> models.User | None:
    return db.query(models.User).filter_by(id=claims.user_id, email=claims.email).first()

def create_user(
    db: Session, email: str, full_name: str, password_hash: str, country: str | None = None
) -> models.User:
    user = models.User(
        email=email,
        full_name=full_name,
        password_hash=password_hash,
        country=country or None,
        terms_accepted=True,
        terms_accepted_at=datetime.now(timezone.utc),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

# ---------- short links ----------

def generate_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))

def _strip_trailing_slashes(path: str) -> str:
    # Root stays "/"; repeated slashes collapse so the result is a fixed point
    return path.rstrip("/") or ("/" if path else path)

def normalize_url(url: str) -> str:
    """Canonical form of ``url`` used as the de-duplication key.

    Trailing slashes are removed from the path (the root ``/`` is kept);
    scheme, host, query string and fragment are left as they are. Input that
    does not parse as an absolute URL gets the same treatment on the raw string.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return _strip_trailing_slashes(url)
    if not parts.scheme or not parts.netloc:
        return _strip_trailing_slashes(url)
    path = _strip_trailing_slashes(parts.path) or "/"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))

def short_url_for(code: str) -> str:
    return f"{config.SHORT_LINK_BASE_URL}/p/{code}"

def find_code_by_normalized_url(db: Session, normalized_url: str) -> str | None:
    return (
        db.query(models.ShortLink.code)
        .filter(models.ShortLink.normalized_url == normalized_url)
        .scalar()
    )

def _insert_ignoring_duplicate_url(db: Session, code: str, original_url: str, normalized_url: str) -> None:
    values = {"code": code, "original_url": original_url, "normalized_url": normalized_url}
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(models.ShortLink).values(**values)
        stmt = stmt.on_conflict_do_nothing(index_elements=["normalized_url"])
    elif dialect == "sqlite":
        stmt = sqlite.insert(models.ShortLink).values(**values)
        stmt = stmt.on_conflict_do_nothing(index_elements=["normalized_url"])
    else:
        stmt = insert(models.ShortLink).values(**values)
    db.execute(stmt)
    db.commit()

def shorten_url(db: Session, original_url: str) -> schemas.ShortenOut | None:
    """Return the short link for ``original_url``, creating it if needed.

    URLs that normalize identically share one code. The code stored after the
    insert attempt is authoritative, so a concurrent request for the same URL
    that wins the insert is returned as-is. Returns ``None`` when the store
    fails or no free code is found within ``MAX_CODE_ATTEMPTS``.
    """
    normalized_url = normalize_url(original_url)
    try:
        existing = find_code_by_normalized_url(db, normalized_url)
        if existing:
            return schemas.ShortenOut(code=existing, short_url=short_url_for(existing))

        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            code = generate_code()
            try:
                _insert_ignoring_duplicate_url(db, code, original_url, normalized_url)
            except IntegrityError:
                db.rollback()
                # Dialects without ON CONFLICT report a lost URL race here too
                winner = find_code_by_normalized_url(db, normalized_url)
                if winner:
                    return schemas.ShortenOut(code=winner, short_url=short_url_for(winner))
                logger.info("Short code collision on attempt %d/%d", attempt, MAX_CODE_ATTEMPTS)
                continue

            stored = find_code_by_normalized_url(db, normalized_url)
            if stored:
                return schemas.ShortenOut(code=stored, short_url=short_url_for(stored))

        logger.error(
            "Failed to generate unique short code after %d attempts for %s",
            MAX_CODE_ATTEMPTS, original_url[:80],
        )
        return None
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Store error while shortening %s", original_url[:80])
        return None

def get_original_url(db: Session, code: str, increment_clicks: bool = True) -> str | None:
    if not increment_clicks:
        return db.query(models.ShortLink.original_url).filter_by(code=code).scalar()

    # Count and read in one statement so concurrent redirects never lose a click
    stmt = (
        update(models.ShortLink)
        .where(models.ShortLink.code == code)
        .values(click_count=models.ShortLink.click_count + 1, updated_at=func.now())
        .returning(models.ShortLink.original_url)
        .execution_options(synchronize_session=False)
    )
    original_url = db.execute(stmt).scalar_one_or_none()
    db.commit()
    return original_url

def get_short_link(db: Session, code: str) -> models.ShortLink | None:
    return db.query(models.ShortLink).filter_by(code=code).first()
