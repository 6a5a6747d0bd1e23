# Local Auth
# Credentials live in the users table (bcrypt hashes, soft delete via deleted_at).
# Each user has exactly one profiles row carrying the role (admin | editor).
# Sign-out stores the token's jti in revoked_tokens until the token would expire.

"""
users:          id, email (unique), encrypted_password, raw_user_meta_data,
                confirmed_at, email_confirmed_at, last_sign_in_at, deleted_at
profiles:       id, user_id (unique, FK users.id), email, full_name, role
revoked_tokens: jti, user_id, expires_at, revoked_at

Access tokens are HS256 JWTs with claims sub, email, role, iss, iat, exp, jti.
"""
