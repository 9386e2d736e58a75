from .config import settings
from .db import Base, SessionLocal, engine
from .scheduler import setup_jobs
from .storage import SqlStorage


def build_scheduler():
    storage = SqlStorage(SessionLocal)
    return setup_jobs(storage, settings.TZ)

def main():
    Base.metadata.create_all(bind=engine)
    sch = build_scheduler()
    sch.start()

if __name__ == "__main__":
    main()
