"""
Identity provider boundary.

`IdentityProvider` owns credentials (the `accounts` collection) and session
tokens. `AuthSession` is the per-client view of it: it keeps the signed-in
user and notifies subscribers whenever that changes.
"""
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from jose import JWTError, jwt

import database
import users
from config import JWT_ALG, JWT_SECRET, RESET_TOKEN_EXPIRE_MIN, TOKEN_EXPIRE_MIN
from errors import AuthError, FormValidationError

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260000
RESET_AUDIENCE = "password-reset"


# ---------------------- Passwords & JWT ----------------------
def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    if not stored:
        return False
    try:
        _, iterations, salt, expected = stored.split("$")
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def create_jwt(payload: Dict[str, Any], expires_minutes: int = TOKEN_EXPIRE_MIN) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=expires_minutes)
    to_encode = {"exp": exp, "iat": now, "jti": uuid4().hex, **payload}
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALG)


@database.backend_call("Error verifying session")
def decode_jwt(token: str, audience: Optional[str] = None) -> Dict[str, Any]:
    try:
        claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG], audience=audience)
    except JWTError as e:
        raise AuthError(f"Invalid token: {str(e)}")
    if claims.get("jti") and database.get_document(database.REVOKED_TOKENS, claims["jti"]):
        raise AuthError("Session has been signed out")
    return claims


def default_mail_sender(email: str, reset_token: str) -> None:
    logger.info("Password reset requested for %s (token %s...)", email, reset_token[:12])


# ---------------------- Identity provider ----------------------
@dataclass
class AuthUser:
    uid: str
    email: str
    display_name: str = ""
    photo_url: Optional[str] = None
    provider: str = "password"
    token: Optional[str] = None


class IdentityProvider:
    def __init__(self, mail_sender: Callable[[str, str], None] = default_mail_sender):
        self.mail_sender = mail_sender

    def _find_account(self, email: str) -> Optional[dict]:
        found = database.get_documents(database.ACCOUNTS, {"email": email.lower()}, limit=1)
        return found[0] if found else None

    def _issue(self, account: dict) -> AuthUser:
        token = create_jwt({"sub": account["id"], "email": account["email"], "name": account.get("displayName", "")})
        return AuthUser(
            uid=account["id"],
            email=account["email"],
            display_name=account.get("displayName", ""),
            photo_url=account.get("photoURL"),
            provider=account.get("provider", "password"),
            token=token,
        )

    @database.backend_call("Error creating account")
    def create_account(self, email: str, password: str, display_name: str = "") -> AuthUser:
        if self._find_account(email):
            raise FormValidationError("Email already registered")
        uid = database.create_document(database.ACCOUNTS, {
            "email": email.lower(),
            "passwordHash": hash_password(password),
            "provider": "password",
            "displayName": display_name,
        })
        return self._issue(database.get_document(database.ACCOUNTS, uid))

    @database.backend_call("Error signing in")
    def verify_credentials(self, email: str, password: str) -> AuthUser:
        account = self._find_account(email)
        if not account or not verify_password(password, account.get("passwordHash")):
            raise AuthError("Invalid email or password")
        return self._issue(account)

    @database.backend_call("Error signing in with Google")
    def upsert_oauth_account(self, provider: str, userinfo: Dict[str, Any]) -> AuthUser:
        """Find or create the account for an OAuth identity (OpenID `userinfo` claims)."""
        email = userinfo["email"].lower()
        account = self._find_account(email)
        if not account:
            uid = database.create_document(database.ACCOUNTS, {
                "email": email,
                "provider": provider,
                "providerId": userinfo.get("sub"),
                "displayName": userinfo.get("name") or email,
                "photoURL": userinfo.get("picture"),
            })
            account = database.get_document(database.ACCOUNTS, uid)
        return self._issue(account)

    @database.backend_call("Error signing out")
    def revoke(self, token: str) -> None:
        claims = decode_jwt(token)
        database.set_document(database.REVOKED_TOKENS, claims["jti"], {
            "sub": claims.get("sub"),
            "revokedAt": database.server_timestamp(),
        })

    @database.backend_call("Error resetting password")
    def send_password_reset_email(self, email: str) -> Optional[str]:
        account = self._find_account(email)
        if not account:
            # Unknown addresses get the same response as known ones.
            logger.info("Password reset requested for unknown email")
            return None
        token = create_jwt({"sub": account["id"], "aud": RESET_AUDIENCE}, expires_minutes=RESET_TOKEN_EXPIRE_MIN)
        self.mail_sender(account["email"], token)
        return token

    @database.backend_call("Error resetting password")
    def confirm_password_reset(self, token: str, new_password: str) -> None:
        claims = decode_jwt(token, audience=RESET_AUDIENCE)
        if claims.get("aud") != RESET_AUDIENCE:
            raise AuthError("Invalid reset token")
        database.update_document(database.ACCOUNTS, claims["sub"], {"passwordHash": hash_password(new_password)})
        database.set_document(database.REVOKED_TOKENS, claims["jti"], {
            "sub": claims["sub"],
            "revokedAt": database.server_timestamp(),
        })


# ---------------------- Session ----------------------
class AuthSession:
    """Signed-in state for one client, with change notifications."""

    def __init__(self, provider: Optional[IdentityProvider] = None, user: Optional[AuthUser] = None):
        self.provider = provider or IdentityProvider()
        self._user = user
        self._listeners: List[Callable[[Optional[AuthUser]], None]] = []

    def current_user(self) -> Optional[AuthUser]:
        return self._user

    def on_auth_change(self, callback: Callable[[Optional[AuthUser]], None]) -> Callable[[], None]:
        self._listeners.append(callback)
        callback(self._user)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _set_user(self, user: Optional[AuthUser]) -> None:
        self._user = user
        for listener in list(self._listeners):
            listener(user)

    def sign_up(self, email: str, password: str, display_name: str = "", role: str = "customer") -> AuthUser:
        user = self.provider.create_account(email, password, display_name)
        users.create_user_profile(user.uid, {
            "email": user.email,
            "displayName": display_name,
            "photoURL": user.photo_url,
            "role": role,
        })
        logger.info("Signed up %s as %s", user.uid, role)
        self._set_user(user)
        return user

    def sign_in(self, email: str, password: str) -> AuthUser:
        user = self.provider.verify_credentials(email, password)
        self._set_user(user)
        return user

    def sign_in_with_google(self, userinfo: Dict[str, Any]) -> AuthUser:
        user = self.provider.upsert_oauth_account("google", userinfo)
        if users.get_user_profile(user.uid) is None:
            users.create_user_profile(user.uid, {
                "email": user.email,
                "displayName": user.display_name,
                "photoURL": user.photo_url,
                "role": "customer",
            })
        self._set_user(user)
        return user

    def sign_out(self) -> None:
        if self._user and self._user.token:
            self.provider.revoke(self._user.token)
        self._set_user(None)

    def reset_password(self, email: str) -> None:
        self.provider.send_password_reset_email(email)
