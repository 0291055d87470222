import os
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


class Config:
    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "best6_db"
            db_user = os.environ.get("DB_USER") or "best6_user"
            db_password = os.environ.get("DB_PASSWORD") or "best6_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "best6.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Fixture source (football-data.org v4)
    FOOTBALL_DATA_KEY = os.environ.get("FOOTBALL_DATA_KEY")
    FOOTBALL_DATA_BASE_URL = (
        os.environ.get("FOOTBALL_DATA_BASE_URL") or "https://api.football-data.org/v4"
    )
    COMPETITION_CODE = os.environ.get("COMPETITION_CODE", "PL")
    CURRENT_MATCHDAY = int(os.environ.get("CURRENT_MATCHDAY") or 19)
    FIXTURE_TARGET_DATE = os.environ.get("FIXTURE_TARGET_DATE")  # YYYY-MM-DD
    FIXTURE_TIMEOUT = int(os.environ.get("FIXTURE_TIMEOUT") or 30)

    # Remote backend. Empty BACKEND_URL means the in-process database backend.
    BACKEND_URL = os.environ.get("BACKEND_URL", "")
    BACKEND_TIMEOUT = int(os.environ.get("BACKEND_TIMEOUT") or 15)

    # Identity strategy: "bypass" or "account"
    AUTH_STRATEGY = os.environ.get("AUTH_STRATEGY", "bypass").lower()

    # Local store
    LOCAL_STORE_DIR = os.environ.get("LOCAL_STORE_DIR") or os.path.join(
        basedir, "instance", "store"
    )
    LOCAL_STORE_PREFIX = os.environ.get("LOCAL_STORE_PREFIX", "best6:")

    # Background sync
    SYNC_IN_BACKGROUND = os.environ.get("SYNC_IN_BACKGROUND", "True").lower() == "true"
    SYNC_MAX_WORKERS = int(os.environ.get("SYNC_MAX_WORKERS") or 5)

    TIMEZONE = os.environ.get("TIMEZONE", "UTC")  # Default to UTC if not specified

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = os.environ.get("LOG_TO_CONSOLE", "True").lower() == "true"
    LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "True").lower() == "true"
    LOG_DIR = os.environ.get("LOG_DIR", "logs")

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get("SQLALCHEMY_ECHO", "False").lower() == "true"


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    # In production, require explicit environment variables
    def __init__(self):
        super().__init__()  # Call parent __init__ to build database URI

        if self.AUTH_STRATEGY == "bypass":
            warnings.warn(
                "PRODUCTION WARNING: AUTH_STRATEGY is 'bypass'! "
                "Every device gets an anonymous identity.",
                UserWarning,
            )
        if not self.FOOTBALL_DATA_KEY:
            warnings.warn(
                "PRODUCTION WARNING: FOOTBALL_DATA_KEY not set! "
                "Fixtures will fall back to cached or sample matches.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    FOOTBALL_DATA_KEY = "test-key"
    BACKEND_URL = ""
    AUTH_STRATEGY = "bypass"
    SYNC_IN_BACKGROUND = False
    LOG_TO_CONSOLE = False
    LOG_TO_FILE = False

    def __init__(self):
        # Keep the in-memory database regardless of DATABASE_URL
        pass


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
