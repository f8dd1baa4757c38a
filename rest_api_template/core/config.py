"""
Configuration for rest-api-template

Resolves the database, cache, server and tracing settings (plus logging)
from environment variables with hardcoded defaults. An optional .env file in
the working directory is loaded first; its absence is not an error.
"""
import os
import re
import threading
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

from ..utils.logger import LogConfig, get_logger

logger = get_logger(__name__)

SERVICE_NAME = "rest-api-template"
DEFAULT_ENV_FILE = ".env"

_TRUTHY = ("true", "1", "yes")
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class DBConfig:
    """Database settings (DB_*)"""
    host: str = "localhost"
    port: str = "3306"
    user: str = "user"
    password: str = field(default="password", repr=False)
    name: str = "mydatabase"


@dataclass(frozen=True)
class RedisConfig:
    """Cache settings (REDIS_*)"""
    host: str = "localhost"
    port: str = "6379"
    password: str = field(default="", repr=False)
    db: int = 0

    @property
    def url(self) -> str:
        """Connection URL, e.g. redis://:secret@localhost:6379/0"""
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server settings (SERVER_ADDR, SERVER_PORT)"""
    address: str = ""
    port: str = "8080"

    @property
    def host(self) -> str:
        """Interface to bind; an empty address means all interfaces"""
        return self.address or "0.0.0.0"

    @property
    def bind_address(self) -> str:
        """Listen string in "<address>:<port>" form (":8080" when address is empty)"""
        return f"{self.address}:{self.port}"


@dataclass(frozen=True)
class JaegerConfig:
    """Tracing agent settings (JAEGER_AGENT_*)"""
    agent_host: str = "localhost"
    agent_port: str = "6831"


@dataclass(frozen=True)
class _Snapshot:
    db: DBConfig
    redis: RedisConfig
    server: ServerConfig
    jaeger: JaegerConfig
    log: LogConfig


class ConfigService:
    """
    Holds application configuration.

    Constructed empty; load_config() resolves every group in one pass and
    publishes them together, so accessors never see a partially loaded state.
    Accessors return None until the first load completes.

    Example:
        config = ConfigService()
        config.load_config()
        print(config.get_db_config().host)
    """

    def __init__(
        self,
        env_file: Optional[str] = DEFAULT_ENV_FILE,
        environ: Optional[Mapping[str, str]] = None
    ):
        """
        Args:
            env_file: Optional dotenv file (relative to the working directory);
                None skips dotenv loading entirely
            environ: Mapping to resolve from (default: os.environ)
        """
        self.name = SERVICE_NAME
        self.env_file = env_file
        self._environ = environ
        self._snapshot: Optional[_Snapshot] = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def init(self) -> None:
        """Initialize the configuration by loading environment variables"""
        self.load_config()

    def load_config(self) -> None:
        """
        Load configuration from environment variables

        Never raises for missing or malformed values: missing keys take their
        default, a malformed REDIS_DB resolves to 0.
        """
        if self.env_file:
            # Optional - env vars may be set by Docker, etc.
            # Variables already present in the environment are not overridden.
            load_dotenv(self.env_file, override=False)

        db = DBConfig(
            host=self._get_env("DB_HOST", "localhost"),
            port=self._get_env("DB_PORT", "3306"),
            user=self._get_env("DB_USER", "user"),
            password=self._get_env("DB_PASSWORD", "password"),
            name=self._get_env("DB_NAME", "mydatabase"),
        )

        # Redis config
        redis = RedisConfig(
            host=self._get_env("REDIS_HOST", "localhost"),
            port=self._get_env("REDIS_PORT", "6379"),
            password=self._get_env("REDIS_PASSWORD", ""),
            db=_parse_int("REDIS_DB", self._get_env("REDIS_DB", "0")),
        )

        # Server config
        server = ServerConfig(
            address=self._get_env("SERVER_ADDR", ""),
            port=self._get_env("SERVER_PORT", "8080"),
        )

        # Jaeger config
        jaeger = JaegerConfig(
            agent_host=self._get_env("JAEGER_AGENT_HOST", "localhost"),
            agent_port=self._get_env("JAEGER_AGENT_PORT", "6831"),
        )

        # Logging config
        log = LogConfig(
            debug=self._get_bool("DEBUG"),
            disabled=self._get_bool("DISABLE_LOGS"),
            format=self._get_env("LOG_FORMAT", "text"),
            caller=self._get_bool("LOG_CALLER"),
            stacktrace=self._get_bool("LOG_STACKTRACE"),
        )

        snapshot = _Snapshot(db=db, redis=redis, server=server, jaeger=jaeger, log=log)
        with self._lock:
            self._snapshot = snapshot
        logger.debug("configuration loaded", service=self.name, server=server.bind_address)

    def get_db_config(self) -> Optional[DBConfig]:
        """Returns the database configuration"""
        snapshot = self._snapshot
        return snapshot.db if snapshot else None

    def get_redis_config(self) -> Optional[RedisConfig]:
        """Returns the Redis configuration"""
        snapshot = self._snapshot
        return snapshot.redis if snapshot else None

    def get_server_config(self) -> Optional[ServerConfig]:
        """Returns the server configuration"""
        snapshot = self._snapshot
        return snapshot.server if snapshot else None

    def get_jaeger_config(self) -> Optional[JaegerConfig]:
        """Returns the Jaeger configuration"""
        snapshot = self._snapshot
        return snapshot.jaeger if snapshot else None

    def get_log_config(self) -> Optional[LogConfig]:
        """Returns the logging configuration"""
        snapshot = self._snapshot
        return snapshot.log if snapshot else None

    def _get_env(self, key: str, default: str) -> str:
        """Gets an environment variable or returns a default value"""
        environ = os.environ if self._environ is None else self._environ
        value = environ.get(key)
        return default if value is None else value

    def _get_bool(self, key: str) -> bool:
        return self._get_env(key, "").strip().lower() in _TRUTHY


def _parse_int(key: str, value: str, fallback: int = 0) -> int:
    # Optional sign and ASCII digits only; no whitespace, "_" or other digit sets
    if _INTEGER_RE.fullmatch(value) is None:
        logger.warning("invalid integer, using fallback", key=key, value=value, fallback=fallback)
        return fallback
    return int(value)
