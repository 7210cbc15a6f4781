"""
Database engine and session factory

PostgreSQL (psycopg) in deployments; any SQLAlchemy URL in DATABASE_URL
overrides it, which is how tests and local runs use SQLite.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from app.core.settings import settings
from app.logging_config import get_logger

logger = get_logger(__name__)

url = make_url(settings.database_url)
logger.info(f"Database: {url.render_as_string(hide_password=True)}")

engine_options = {"pool_pre_ping": True}
if url.get_backend_name() == "sqlite":
    engine_options["connect_args"] = {"check_same_thread": False}
else:
    engine_options["pool_recycle"] = 3600

engine = create_engine(url, **engine_options)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Request-scoped session; the invoice service commits or rolls back itself."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
