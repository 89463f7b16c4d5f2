# runtime configuration, read from the environment (and an optional .env file)
import os

from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


DEBUG = bool(os.getenv("DEBUG"))

DB_PATH = os.getenv("STOREFRONT_DB_PATH", "data/storefront.sqlite")
MEDIA_DIR = os.getenv("STOREFRONT_MEDIA_DIR", "data/media")

# principals granted the admin role when the local backend is first initialized
ADMIN_PRINCIPALS = _split_csv(os.getenv("STOREFRONT_ADMINS", "admin"))

# seconds to wait before retrying a login that hit an existing session
LOGIN_RETRY_DELAY = float(os.getenv("STOREFRONT_LOGIN_RETRY_DELAY", "0.3"))

# upload chunk size for the media store
MEDIA_CHUNK_SIZE = int(os.getenv("STOREFRONT_MEDIA_CHUNK_SIZE", str(64 * 1024)))
