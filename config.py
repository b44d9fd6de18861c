import os

SECRET_KEY = os.environ.get("FORUM_SECRET_KEY", "your-secret-key-change-this")
DB_PATH = os.environ.get("FORUM_DB_PATH", "forum.db")
ALLOWED_HOSTS = ["localhost", "127.0.0.1", "yourforum.com"]

# Server Configuration
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8090

# Logging
LOG_LEVEL = os.environ.get("FORUM_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# Password Hashing (PBKDF2-HMAC-SHA512)
PASSWORD_HASH_ROUNDS = 250_000
DERIVED_KEY_LENGTH = 64
SALT_BYTES = 64
SALT_FALLBACK_SUFFIX = "gotrojans"

# Session Settings
SESSION_COOKIE_NAME = "forum_session"
SESSION_EXPIRE_HOURS = 24
SESSION_TOKEN_BYTES = 64
SESSION_TOKEN_ALGORITHM = "HS256"

# Message timestamps, e.g. 2024-05-01T13:45:00+0000
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Document store
DESIGN_DOCUMENT = "forum"
DEFAULT_FORUMS = ["General Discussion", "Announcements", "Off Topic"]

# Form fields
LOGIN_FIELDS = ["username", "password"]
MESSAGE_FIELDS = ["title", "body"]

# Security Settings
GZIP_MIN_SIZE = 1000

# Time Constants (in seconds)
SECONDS_PER_HOUR = 3600
