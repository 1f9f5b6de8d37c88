"""
CiviSure - Authentication Logic
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
import hashlib
import logging
import re
import secrets
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import Request, Depends

from civisure.config import settings
from civisure.database import get_db
from civisure.errors import InvalidInput, Unauthorized, Forbidden, Conflict, NotFound
from civisure.models.user import User, UserSession, UserRole
from civisure.timestamps import now_utc

logger = logging.getLogger(__name__)

# Session cookie serializer
serializer = URLSafeTimedSerializer(settings.SECRET_KEY, salt="civisure-session")

# Session cookie name
SESSION_COOKIE_NAME = "civisure_session"

# something@something.tld
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

INVALID_CREDENTIALS = "Invalid credentials"


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, resolved from the session cookie."""
    user_id: int
    email: str
    full_name: str
    role: str
    session_id: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def public(self) -> dict:
        return {
            "id": self.user_id,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
        }


# =============================================================================
# PASSWORD UTILITIES
# =============================================================================

def hash_password(password: str, iterations: int = None) -> str:
    """Hash a password using PBKDF2-SHA256 as iterations$salt$hash."""
    if iterations is None:
        iterations = settings.PASSWORD_HASH_ITERATIONS
    salt = secrets.token_hex(16)
    pwd_hash = hashlib.pbkdf2_hmac(
        'sha256',
        password.encode('utf-8'),
        salt.encode('utf-8'),
        iterations,
    ).hex()
    return f"{iterations}${salt}${pwd_hash}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        iterations, salt, stored_hash = hashed_password.split('$')
        pwd_hash = hashlib.pbkdf2_hmac(
            'sha256',
            plain_password.encode('utf-8'),
            salt.encode('utf-8'),
            int(iterations),
        ).hex()
        return secrets.compare_digest(pwd_hash, stored_hash)
    except ValueError:
        return False


# =============================================================================
# SESSION COOKIE
# =============================================================================

def sign_session_id(session_id: str) -> str:
    """Wrap a session id in a signed, timestamped cookie value."""
    return serializer.dumps({"sid": session_id})


def unsign_session_id(token: str, max_age: int = None) -> Optional[str]:
    """
    Verify a session cookie value and return the session id.

    Returns None if the signature is invalid or the cookie is older than
    max_age seconds (defaults to SESSION_EXPIRE_MINUTES).
    """
    if max_age is None:
        max_age = settings.SESSION_EXPIRE_MINUTES * 60

    try:
        data = serializer.loads(token, max_age=max_age)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(data, dict):
        return None
    return data.get("sid")


def set_session_cookie(response, session_id: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=sign_session_id(session_id),
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=not settings.DEBUG,  # Secure in production
    )


# =============================================================================
# USER OPERATIONS
# =============================================================================

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Get a user by email address."""
    result = await db.execute(
        select(User).where(User.email == email.lower().strip())
    )
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    """Get a user by ID."""
    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    return result.scalar_one_or_none()


async def register_user(
    db: AsyncSession,
    email: Optional[str],
    password: Optional[str],
    full_name: Optional[str],
    phone: Optional[str] = None,
    role: str = UserRole.USER,
) -> User:
    """
    Create a new user account.

    Raises InvalidInput for missing or malformed fields and Conflict if the
    email is already registered.
    """
    if not email or not password or not full_name or not full_name.strip():
        raise InvalidInput("Email, password, and full name are required")

    email = email.lower().strip()
    if not EMAIL_PATTERN.match(email):
        raise InvalidInput("Invalid email address")
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise InvalidInput(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")

    if await get_user_by_email(db, email):
        raise Conflict("Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(password),
        full_name=full_name.strip(),
        phone=phone.strip() if phone else None,
        role=role,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        await db.rollback()
        raise Conflict("Email already registered")
    await db.refresh(user)
    logger.info(f"Registered user {user.id}")
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """
    Authenticate a user by email and password.

    Returns the user if authentication succeeds, None otherwise.
    """
    user = await get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def login(db: AsyncSession, email: Optional[str], password: Optional[str]) -> tuple[User, UserSession]:
    """
    Verify credentials and open a server-side session.

    The same Unauthorized message is used for unknown emails and wrong
    passwords.
    """
    if not email or not password:
        raise InvalidInput("Email and password are required")

    user = await authenticate_user(db, email, password)
    if not user:
        raise Unauthorized(INVALID_CREDENTIALS)

    now = now_utc()
    session = UserSession(
        id=secrets.token_urlsafe(32),
        user_id=user.id,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.SESSION_EXPIRE_MINUTES),
    )
    user.last_login = now
    db.add(session)
    await purge_expired_sessions(db)
    await db.commit()
    return user, session


async def purge_expired_sessions(db: AsyncSession) -> int:
    """Delete every session past its expiry. The caller commits."""
    result = await db.execute(delete(UserSession).where(UserSession.expires_at <= now_utc()))
    if result.rowcount:
        logger.info(f"Purged {result.rowcount} expired sessions")
    return result.rowcount


async def logout(db: AsyncSession, session_id: Optional[str]) -> None:
    """Invalidate a session. Unknown or missing ids are ignored."""
    if not session_id:
        return
    await db.execute(delete(UserSession).where(UserSession.id == session_id))
    await db.commit()


async def update_user_role(db: AsyncSession, auth: AuthContext, user_id: int, role: Optional[str]) -> None:
    """Change another user's role. Admins cannot change their own role."""
    if role not in UserRole.ALL:
        raise InvalidInput("Invalid role")
    if user_id == auth.user_id:
        raise InvalidInput("Cannot change your own role")

    result = await db.execute(
        update(User).where(User.id == user_id).values(role=role)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("User not found")
    await db.commit()
    logger.info(f"User {auth.user_id} set role of user {user_id} to {role}")


async def ensure_default_admin(db: AsyncSession) -> Optional[User]:
    """Create the bootstrap admin account if configured and missing."""
    if not settings.DEFAULT_ADMIN_EMAIL or not settings.DEFAULT_ADMIN_PASSWORD:
        return None
    if await get_user_by_email(db, settings.DEFAULT_ADMIN_EMAIL):
        return None
    user = await register_user(
        db,
        email=settings.DEFAULT_ADMIN_EMAIL,
        password=settings.DEFAULT_ADMIN_PASSWORD,
        full_name=settings.DEFAULT_ADMIN_NAME,
        role=UserRole.ADMIN,
    )
    logger.info(f"Created default admin account {user.email}")
    return user


# =============================================================================
# REQUEST AUTHENTICATION
# =============================================================================

async def resolve_session(db: AsyncSession, token: Optional[str]) -> Optional[AuthContext]:
    """
    Resolve a session cookie value to the caller's identity.

    Returns None for a missing, forged, expired or revoked session.
    """
    if not token:
        return None

    session_id = unsign_session_id(token)
    if not session_id:
        return None

    result = await db.execute(
        select(UserSession, User)
        .join(User, UserSession.user_id == User.id)
        .where(UserSession.id == session_id)
    )
    row = result.first()
    if row is None:
        return None

    session, user = row
    if session.is_expired:
        await db.execute(delete(UserSession).where(UserSession.id == session_id))
        await db.commit()
        return None

    return AuthContext(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        session_id=session.id,
    )


async def get_current_user(request: Request, db: AsyncSession) -> Optional[AuthContext]:
    """
    Get the current caller from the session cookie.

    Returns None if not authenticated.
    """
    return await resolve_session(db, request.cookies.get(SESSION_COOKIE_NAME))


async def optional_auth(request: Request, db: AsyncSession = Depends(get_db)) -> Optional[AuthContext]:
    """Dependency: the caller's identity if logged in, never blocks."""
    return await get_current_user(request, db)


async def require_auth(request: Request, db: AsyncSession = Depends(get_db)) -> AuthContext:
    """Dependency: raises Unauthorized without a valid session."""
    auth = await get_current_user(request, db)
    if not auth:
        raise Unauthorized("Authentication required")
    return auth


async def require_admin(auth: Optional[AuthContext] = Depends(optional_auth)) -> AuthContext:
    """Dependency: raises Forbidden unless the caller is a logged-in admin."""
    if not auth or not auth.is_admin:
        raise Forbidden("Admin access required")
    return auth
