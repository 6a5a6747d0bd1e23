import os

# Settings are read when folio.config is first imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-for-folio-tests-only-0123456789")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("USE_IN_MEMORY_STORAGE", "true")
os.environ.setdefault("DATABASE_CONNECT_RETRIES", "1")
for name in ("GMAIL_USER", "GMAIL_APP_PASSWORD", "RESEND_API_KEY"):
    os.environ.pop(name, None)
