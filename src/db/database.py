from sqlalchemy import create_engine, Column, String, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import logging

from src.config.settings import DATABASE_URL

# Get logger
logger = logging.getLogger(__name__)

Base = declarative_base()

# Define the usage tracking table structure
class UsageRecordDB(Base):
    __tablename__ = "usage_tracking"
    __table_args__ = (UniqueConstraint("ip_address", "date", name="uq_usage_ip_date"),)

    id = Column(String, primary_key=True, index=True)
    ip_address = Column(String, nullable=False)
    usage_count = Column(Integer, nullable=False, default=0)
    date = Column(String, nullable=False)  # YYYY-MM-DD
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)


def make_engine(url=None):
    url = url or DATABASE_URL
    if not url:
        raise ValueError("DB_URL is not set")
    if url == "sqlite://" or (url.startswith("sqlite") and ":memory:" in url):
        # Share one in-memory database across threads
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created (if they didn't exist previously).")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise
