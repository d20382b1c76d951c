import uuid
from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base

metadata = MetaData()
Base = declarative_base(metadata=metadata)


def new_id() -> str:
    return str(uuid.uuid4())
