# chatapp/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from chatapp.core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # Request handlers and the websocket endpoint share connections across threads
    connect_args["check_same_thread"] = False

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
