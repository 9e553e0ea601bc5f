import os
import secrets
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

DEFAULT_POOL_SIZE = 5
DEFAULT_SWEEP_INTERVAL = 300
DEFAULT_LIST_LIMIT = 50
DEFAULT_MAX_CHAR_CONTENT = 50000
DEFAULT_SESSION_MAX_AGE = 14 * 24 * 60 * 60
SESSION_COOKIE = "inkpaste_session"


def _int_env(name: str, default: int) -> int:
    v = os.getenv(name)
    if not v:
        return default
    try:
        n = int(v)
        if n < 1:
            n = default
    except ValueError:
        n = default
    return n


def _bool_env(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


def default_database_path() -> str:
    path = os.getenv("DATABASE_PATH")
    if not path:
        # default to ./pastes/pastes.db
        path = os.path.join(os.getcwd(), "pastes", "pastes.db")
    return os.path.abspath(path)


def normalize_database_url(url: str) -> str:
    """The async engine and ``databases`` both need the aiosqlite driver."""
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    return url


@dataclass
class Settings:
    database_url: str
    pool_size: int = DEFAULT_POOL_SIZE
    secret_key: str = field(default_factory=lambda: secrets.token_urlsafe(32), repr=False)
    session_cookie: str = SESSION_COOKIE
    session_max_age: int = DEFAULT_SESSION_MAX_AGE
    https_only: bool = False
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL
    list_limit: int = DEFAULT_LIST_LIMIT
    max_char_content: int = DEFAULT_MAX_CHAR_CONTENT
    log_level: str = "INFO"

    def __post_init__(self):
        self.database_url = normalize_database_url(self.database_url)

    @classmethod
    def from_env(cls) -> "Settings":
        database_url = os.getenv("DATABASE_URL") or os.getenv("DB_URL")
        if not database_url:
            database_url = f"sqlite+aiosqlite:///{default_database_path()}"

        kwargs = {}
        # Session secret
        secret_key = os.getenv("SECRET_KEY")
        if secret_key:
            kwargs["secret_key"] = secret_key

        return cls(
            database_url=database_url,
            pool_size=_int_env("DB_POOL_SIZE", DEFAULT_POOL_SIZE),
            session_max_age=_int_env("SESSION_MAX_AGE", DEFAULT_SESSION_MAX_AGE),
            https_only=_bool_env("HTTPS_ONLY"),
            sweep_interval=_int_env("SWEEP_INTERVAL", DEFAULT_SWEEP_INTERVAL),
            list_limit=_int_env("LIST_LIMIT", DEFAULT_LIST_LIMIT),
            max_char_content=_int_env("MAX_CHAR_CONTENT", DEFAULT_MAX_CHAR_CONTENT),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
            **kwargs,
        )
