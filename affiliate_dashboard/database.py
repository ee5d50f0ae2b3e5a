from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from affiliate_dashboard.config import DATABASE_URL

# Aggregate reads run on worker threads, each with its own session; pooled
# SQLite connections must be allowed to move between those threads.
def _engine_options(url: str) -> dict:
	if make_url(url).get_backend_name() == "sqlite":
		return {"connect_args": {"check_same_thread": False}}
	return {"pool_pre_ping": True}

engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

class Base(DeclarativeBase):
	pass
