# canacontrol/database.py
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from config import DATABASE_URL


def criar_engine(url=DATABASE_URL, **kwargs):
    """Cria a engine, ativando as chaves estrangeiras quando o banco é SQLite."""
    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _ativar_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine

# Cria a engine do banco de dados
engine = criar_engine()

# Cria uma sessão para interagir com o banco de dados
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base para as classes de modelo (tabelas)
Base = declarative_base()


def init_db(bind=None):
    """Cria as tabelas que ainda não existem."""
    import models  # noqa: F401  registra as tabelas na Base
    Base.metadata.create_all(bind=bind or engine)
