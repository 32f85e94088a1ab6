import pytest
import requests
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import config
import models
import operations
from database import Base, criar_engine


class RespostaFalsa:
    def __init__(self, status_code=200, dados=None, text=""):
        self.status_code = status_code
        self.ok = status_code < 400
        self._dados = dados or {}
        self.text = text

    def json(self):
        return self._dados

    def raise_for_status(self):
        if not self.ok:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")


@pytest.fixture(autouse=True)
def sem_servicos_externos(monkeypatch):
    monkeypatch.setattr(config, "WEBHOOK_URL", "")
    monkeypatch.setattr(config, "WEBHOOK_API_KEY", "")
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")


@pytest.fixture
def db_engine():
    engine = criar_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def fabrica_sessao(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(fabrica_sessao):
    session = fabrica_sessao()
    yield session
    session.close()


@pytest.fixture
def admin(db):
    return operations.cadastrar_usuario(db, "admin@canacontrol.com", "admin123", "Admin", models.PERFIL_ADMIN, uid="admin-user")


@pytest.fixture
def tecnico(db):
    return operations.cadastrar_usuario(db, "tech@canacontrol.com", "tecnico123", "Técnico", uid="tech-user")
