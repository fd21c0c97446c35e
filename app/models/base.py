from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Declarative base shared by every ORM model.

    Alembic's env.py imports `app.models` so that all tables below register
    on `Base.metadata`.
    """

    pass
