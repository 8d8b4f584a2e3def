from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from db.models import Base


def init_db(db_file: Path | str = "validator_accounting.db", echo: bool = False) -> Session:
    """Open (creating if needed) the SQLite store and return a session.

    Stored records are kept between runs; tables are created when missing.
    """
    db_path = Path(db_file)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine: Engine = create_engine(f"sqlite:///{db_path}", echo=echo)

    Base.metadata.create_all(engine)
    return sessionmaker(engine)()
