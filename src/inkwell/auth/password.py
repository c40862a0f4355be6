"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks. The work
factor is configurable but never below 10 rounds (Settings enforces
this); 12 rounds takes ~100ms per hash on modern hardware.

Comparison is delegated to bcrypt.checkpw, which is constant-time
with respect to the hash.
"""

import bcrypt

MIN_ROUNDS = 10


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    if rounds < MIN_ROUNDS:
        raise ValueError(f"bcrypt rounds must be at least {MIN_ROUNDS}")
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False
