# backend/peakconditions/db/session.py

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from peakconditions.config.settings import settings

engine = create_async_engine(settings.database_url, echo=False)
# Snapshots outlive their session in background tasks
AsyncSessionLocal = async_sessionmaker(autoflush=False, bind=engine, expire_on_commit=False)
