"""Authentication and authorization.

Learn: Two ways to prove who you are, one session token format:
1. Local → email/password (bcrypt) → session JWT
2. Google → verified ID token → session JWT

Every protected route resolves the session JWT to a CurrentIdentity;
post mutations then compare it against the post's owner.
"""
