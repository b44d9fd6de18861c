import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from Crypto.Hash import SHA512
from Crypto.Protocol.KDF import PBKDF2
from Crypto.Random import get_random_bytes

from config import (PASSWORD_HASH_ROUNDS, DERIVED_KEY_LENGTH, SALT_BYTES, SALT_FALLBACK_SUFFIX,
                    SESSION_EXPIRE_HOURS, SESSION_TOKEN_ALGORITHM)

logger = logging.getLogger(__name__)


class SecurityManager:
    def __init__(self, secret_key: str, rounds: int = PASSWORD_HASH_ROUNDS):
        self.secret_key = secret_key
        self.algorithm = SESSION_TOKEN_ALGORITHM
        self.rounds = rounds
        self.session_expire_hours = SESSION_EXPIRE_HOURS

    def derive_hash(self, password: str, salt: str) -> str:
        """Derive a 64-byte PBKDF2-HMAC-SHA512 key from password and salt, as lowercase hex"""
        key = PBKDF2(
            password.encode('utf-8'),
            salt.encode('utf-8'),
            dkLen=DERIVED_KEY_LENGTH,
            count=self.rounds,
            hmac_hash_module=SHA512
        )
        return key.hex()

    def verify_password(self, candidate: str, salt: str, expected_hash: str) -> bool:
        """Verify a submitted password against a stored hash"""
        computed = self.derive_hash(candidate, salt)
        return hmac.compare_digest(computed.encode('ascii'), expected_hash.encode('ascii'))

    def generate_salt(self, username: str = "", password: str = "") -> str:
        """Generate a hex-encoded random salt.

        If the system's secure random source is unavailable, falls back to
        a SHA-512 digest of username + password + a fixed suffix. That
        fallback is low-entropy and only kept for compatibility with
        existing accounts.
        """
        try:
            return get_random_bytes(SALT_BYTES).hex()
        except (NotImplementedError, OSError):
            logger.warning("Secure random source unavailable, using fallback salt")
            digest = SHA512.new((username + password + SALT_FALLBACK_SUFFIX).encode('utf-8'))
            return digest.hexdigest()

    def create_session_token(self, session_id: str) -> str:
        """Sign a session id into the value stored in the session cookie"""
        expire = datetime.now(timezone.utc) + timedelta(hours=self.session_expire_hours)
        return jwt.encode({"sid": session_id, "exp": expire}, self.secret_key, algorithm=self.algorithm)

    def read_session_token(self, token: str) -> Optional[str]:
        """Return the session id carried by a cookie token, or None if it is invalid or expired"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.debug("Session token expired")
            return None
        except jwt.InvalidTokenError:
            logger.debug("Invalid session token")
            return None
        session_id = payload.get("sid")
        return session_id if isinstance(session_id, str) else None
