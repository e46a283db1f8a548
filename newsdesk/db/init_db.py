from newsdesk.db.base import Base
from newsdesk.db.session import get_engine
from newsdesk import models  # noqa: F401


def init_db() -> None:
    Base.metadata.create_all(bind=get_engine())
