import os

os.environ.setdefault("USE_S3", "false")
from .base import *  # noqa: E402,F401,F403

DEBUG = True
USE_S3 = False  # ensure local storage in tests
SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key")

# SQLite for CI speed/simplicity if DATABASE_URL absent
if not os.environ.get("DATABASE_URL"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "test.db",
        }
    }

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYMONGO_SECRET_KEY = "sk_test_dummy"
PAYMONGO_WEBHOOK_SECRET = "whsk_test_secret"
AWS_STORAGE_BUCKET_NAME = "drivehub-test"
AWS_S3_REGION_NAME = "us-east-1"
