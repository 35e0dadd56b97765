from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker, Session
from typing import Dict, Generator
from contextlib import contextmanager
import logging

from pydantic import SecretStr
from pydantic_settings import BaseSettings
from .base import StorageAdapter
from .models import Base, PatientModel

logger = logging.getLogger(__name__)

class PostgresConfig(BaseSettings):
    """Connection settings for the patients database."""
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "clinisearch"
    POSTGRES_POOL_SIZE: int = 5
    POSTGRES_MAX_OVERFLOW: int = 10
    # Per-statement deadline for strategy queries
    POSTGRES_STATEMENT_TIMEOUT_MS: int = 5000
    POSTGRES_APPLICATION_NAME: str = "clinisearch"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def connection_string(self) -> str:
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def connect_args(self) -> Dict[str, str]:
        return {
            "application_name": self.POSTGRES_APPLICATION_NAME,
            "options": f"-c statement_timeout={self.POSTGRES_STATEMENT_TIMEOUT_MS}",
        }

class PostgresAdapter(StorageAdapter):
    """
    Connection pool and session scope for the patients table.

    The SQL document store runs each query through `get_session()` from a
    worker thread, so the pool must allow at least as many connections as
    strategies fanned out at once.
    """

    def __init__(self, config: PostgresConfig):
        self.config = config
        self._engine = None
        self._session_factory = None

    def connect(self) -> None:
        if self._engine:
            return

        logger.info(
            "Connecting to patients database at %s:%s/%s",
            self.config.POSTGRES_HOST, self.config.POSTGRES_PORT, self.config.POSTGRES_DB,
        )
        try:
            self._engine = create_engine(
                self.config.connection_string,
                pool_size=self.config.POSTGRES_POOL_SIZE,
                max_overflow=self.config.POSTGRES_MAX_OVERFLOW,
                pool_pre_ping=True,
                connect_args=self.config.connect_args,
            )
        except Exception as e:
            logger.error(f"Failed to create Postgres engine: {e}")
            raise

        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Patients database pool closed.")

    def health_check(self) -> bool:
        if not self._engine:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"Patients database unreachable: {e}")
            return False

    def create_tables(self) -> None:
        """Create the patients table and its range indexes if missing."""
        if not self._engine:
            raise ConnectionError("Postgres is not connected. Call connect() first.")
        existed = inspect(self._engine).has_table(PatientModel.__tablename__)
        Base.metadata.create_all(self._engine)
        if not existed:
            logger.info("Created table %s", PatientModel.__tablename__)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Transactional scope: commit on success, roll back on any error.
        """
        if not self._session_factory:
            raise ConnectionError("Postgres is not connected. Call connect() first.")

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
