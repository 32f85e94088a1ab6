from datetime import datetime, timezone

from sqlalchemy import (Column, Integer, String, Float, Date, DateTime, Boolean,
                        ForeignKey, Text)
from sqlalchemy.orm import relationship
from database import Base

# Perfis de usuário
PERFIL_ADMIN = "admin"
PERFIL_TECNICO = "technician"
PERFIS = (PERFIL_ADMIN, PERFIL_TECNICO)

# Estados de entrega da fila de e-mail
ENTREGA_PENDENTE = "PENDENTE"
ENTREGA_SUCESSO = "SUCCESS"
ENTREGA_ERRO = "ERROR"


class Usuario(Base):
    __tablename__ = "usuarios"
    uid = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    nome = Column(String)
    perfil = Column(String, nullable=False, default=PERFIL_TECNICO)
    senha_hash = Column(String)

    @property
    def is_admin(self):
        return self.perfil == PERFIL_ADMIN

    def to_dict(self):
        return {"id": self.uid, "email": self.email, "name": self.nome, "role": self.perfil}


class Area(Base):
    __tablename__ = "areas"
    id = Column(Integer, primary_key=True, index=True)
    setor_lote = Column(String, nullable=False)
    talhoes = Column(String, nullable=False)
    data_plantio = Column(Date, nullable=False)
    data_proxima_vistoria = Column(Date, index=True)
    status = Column(String, nullable=False)
    vistorias = relationship("Vistoria", back_populates="area",
                             cascade="all, delete-orphan",
                             order_by=lambda: [Vistoria.data.desc(), Vistoria.id.desc()])

    @property
    def ultima_vistoria(self):
        return self.vistorias[0] if self.vistorias else None

    def to_dict(self):
        return {
            "id": self.id,
            "sectorLote": self.setor_lote,
            "plots": self.talhoes,
            "plantingDate": self.data_plantio.isoformat() if self.data_plantio else None,
            "nextInspectionDate": self.data_proxima_vistoria.isoformat() if self.data_proxima_vistoria else None,
            "status": self.status,
            "inspections": [v.to_dict() for v in self.vistorias],
        }


class Vistoria(Base):
    __tablename__ = "vistorias"
    id = Column(Integer, primary_key=True, index=True)
    area_id = Column(Integer, ForeignKey("areas.id", ondelete="CASCADE"), nullable=False)
    data = Column(Date, nullable=False)
    altura_cm = Column(Float, nullable=False)
    observacoes = Column(Text, default="")
    no_porte = Column(Boolean, nullable=False, default=False)
    tecnico_uid = Column(String, ForeignKey("usuarios.uid", ondelete="SET NULL"), nullable=True)
    area = relationship("Area", back_populates="vistorias")
    tecnico = relationship("Usuario")

    def to_dict(self):
        return {
            "id": self.id,
            "date": self.data.isoformat(),
            "heightCm": self.altura_cm,
            "observations": self.observacoes or "",
            "atSize": bool(self.no_porte),
        }


class DestinatarioEmail(Base):
    __tablename__ = "destinatarios_email"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False)


class EmailFila(Base):
    __tablename__ = "fila_email"
    id = Column(Integer, primary_key=True, index=True)
    para = Column(String, nullable=False)
    assunto = Column(String, nullable=False)
    html = Column(Text, nullable=False)
    estado_entrega = Column(String, nullable=False, default=ENTREGA_PENDENTE, index=True)
    erro_entrega = Column(Text, nullable=True)
    criado_em = Column(DateTime, default=lambda: datetime.now(timezone.utc))
