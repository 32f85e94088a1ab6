import logging
import math
import re
import uuid
from datetime import date

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

import agendamento
import models
from excecoes import (NaoAutenticado, PermissaoNegada, AreaNaoEncontrada,
                      DadosInvalidos, OperacaoInvalida)
from notificacoes import notificar

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
TAMANHO_MINIMO_SENHA = 6
CAMPOS_EDITAVEIS_AREA = ("setor_lote", "talhoes", "data_plantio", "data_proxima_vistoria", "status")

# =============================================================================
# 1. USUÁRIOS E PERMISSÕES
# =============================================================================

def obter_usuario(db: Session, uid: str):
    if not uid:
        return None
    return db.get(models.Usuario, uid)


def exigir_usuario(db: Session, uid: str) -> models.Usuario:
    """Retorna o usuário autenticado ou levanta NaoAutenticado."""
    usuario = obter_usuario(db, uid)
    if usuario is None:
        logger.warning("Usuário %s autenticado mas sem cadastro em 'usuarios'.", uid)
        raise NaoAutenticado("Usuário não autenticado.")
    return usuario


def exigir_admin(db: Session, uid: str) -> models.Usuario:
    usuario = exigir_usuario(db, uid)
    if not usuario.is_admin:
        raise PermissaoNegada("Apenas administradores podem realizar esta operação.")
    return usuario


def _validar_email(email):
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise DadosInvalidos("Por favor, insira um email válido.")
    return email


def cadastrar_usuario(db: Session, email: str, senha: str, nome: str = None,
                      perfil: str = models.PERFIL_TECNICO, uid: str = None) -> models.Usuario:
    """Grava o perfil do usuário sem checar permissões (uso interno e carga inicial)."""
    email = _validar_email(email)
    if not senha or len(senha) < TAMANHO_MINIMO_SENHA:
        raise DadosInvalidos(f"A senha deve ter no mínimo {TAMANHO_MINIMO_SENHA} caracteres.")
    if perfil not in models.PERFIS:
        raise DadosInvalidos(f"Perfil inválido: {perfil}")

    novo_usuario = models.Usuario(
        uid=uid or uuid.uuid4().hex,
        email=email,
        nome=nome or email.split("@")[0],
        perfil=perfil,
        senha_hash=generate_password_hash(senha),
    )
    db.add(novo_usuario)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DadosInvalidos(f"Já existe um usuário com o email {email}.")
    db.refresh(novo_usuario)
    logger.info("Usuário criado: %s (%s)", novo_usuario.email, novo_usuario.perfil)
    return novo_usuario


def criar_usuario(db: Session, uid_admin: str, email: str, senha: str, nome: str = None,
                  perfil: str = models.PERFIL_TECNICO) -> models.Usuario:
    """Cria uma nova conta. Por padrão, com o perfil de técnico."""
    exigir_admin(db, uid_admin)
    return cadastrar_usuario(db, email, senha, nome, perfil)


def _senha_confere(usuario, senha):
    return bool(usuario.senha_hash) and check_password_hash(usuario.senha_hash, senha or "")


def autenticar(db: Session, email: str, senha: str):
    """Retorna o usuário se email e senha conferem, senão None."""
    usuario = db.query(models.Usuario).filter(models.Usuario.email == (email or "").strip().lower()).first()
    if usuario is None or not _senha_confere(usuario, senha):
        return None
    return usuario


def alterar_senha(db: Session, uid: str, senha_atual: str, nova_senha: str):
    """Troca a senha do próprio usuário, confirmando a senha atual."""
    usuario = exigir_usuario(db, uid)
    if not _senha_confere(usuario, senha_atual):
        raise DadosInvalidos("A senha atual está incorreta. Tente novamente.")
    if not nova_senha or len(nova_senha) < TAMANHO_MINIMO_SENHA:
        raise DadosInvalidos(f"A nova senha precisa de no mínimo {TAMANHO_MINIMO_SENHA} caracteres.")
    usuario.senha_hash = generate_password_hash(nova_senha)
    db.commit()
    logger.info("Senha alterada: %s", usuario.email)

# =============================================================================
# 2. ÁREAS
# =============================================================================

def listar_areas(db: Session, status: str = None):
    """Lista as áreas pela data da próxima vistoria (mais próxima primeiro)."""
    query = db.query(models.Area)
    if status:
        query = query.filter(models.Area.status == status)
    return query.order_by(models.Area.data_proxima_vistoria.asc(), models.Area.id.asc()).all()


def obter_area(db: Session, area_id: int) -> models.Area:
    area = db.get(models.Area, area_id)
    if area is None:
        raise AreaNaoEncontrada(f"Área {area_id} não encontrada.")
    return area


def _serializar(valor):
    return valor.isoformat() if isinstance(valor, date) else valor


def criar_area(db: Session, uid: str, setor_lote: str, talhoes: str, data_plantio: date) -> models.Area:
    """Cadastra uma área e agenda a primeira vistoria para 90 dias após o plantio."""
    exigir_admin(db, uid)
    setor_lote = (setor_lote or "").strip()
    talhoes = (talhoes or "").strip()
    if not setor_lote:
        raise DadosInvalidos("Setor/Lote é obrigatório.")
    if not talhoes:
        raise DadosInvalidos("Talhões são obrigatórios.")
    if not isinstance(data_plantio, date):
        raise DadosInvalidos("A data de plantio é obrigatória.")

    nova_area = models.Area(
        setor_lote=setor_lote,
        talhoes=talhoes,
        data_plantio=data_plantio,
        data_proxima_vistoria=agendamento.calcular_primeira_vistoria(data_plantio),
        status=agendamento.STATUS_AGENDADA,
    )
    db.add(nova_area)
    db.commit()
    db.refresh(nova_area)
    logger.info("Área %s criada (%s), vistoria em %s", nova_area.id, nova_area.setor_lote, nova_area.data_proxima_vistoria)

    notificar(db, {"event": "area_created", "area": nova_area.to_dict()})
    return nova_area


def atualizar_area(db: Session, uid: str, area_id: int, **alteracoes) -> models.Area:
    """Atualiza campos de uma área (somente administradores)."""
    exigir_admin(db, uid)
    area = obter_area(db, area_id)

    desconhecidos = set(alteracoes) - set(CAMPOS_EDITAVEIS_AREA)
    if desconhecidos:
        raise DadosInvalidos(f"Campos não editáveis: {', '.join(sorted(desconhecidos))}")
    if "status" in alteracoes and alteracoes["status"] not in agendamento.STATUS_AREA:
        raise DadosInvalidos(f"Status inválido: {alteracoes['status']}")
    for campo in ("setor_lote", "talhoes"):
        if campo in alteracoes:
            alteracoes[campo] = (alteracoes[campo] or "").strip()
            if not alteracoes[campo]:
                raise DadosInvalidos(f"O campo {campo} não pode ficar vazio.")
    for campo in ("data_plantio", "data_proxima_vistoria"):
        if campo in alteracoes and not isinstance(alteracoes[campo], date):
            raise DadosInvalidos(f"O campo {campo} precisa ser uma data.")

    # Sem vistorias, a primeira vistoria acompanha a nova data de plantio
    nova_data_plantio = alteracoes.get("data_plantio")
    if (nova_data_plantio and nova_data_plantio != area.data_plantio
            and "data_proxima_vistoria" not in alteracoes and not area.vistorias):
        alteracoes["data_proxima_vistoria"] = agendamento.calcular_primeira_vistoria(nova_data_plantio)

    for campo, valor in alteracoes.items():
        setattr(area, campo, valor)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(area)
    logger.info("Área %s atualizada: %s", area.id, sorted(alteracoes))

    notificar(db, {
        "event": "area_updated",
        "areaId": area.id,
        "changes": {campo: _serializar(valor) for campo, valor in alteracoes.items()},
    })
    return area


def reagendar_vistoria(db: Session, uid: str, area_id: int, nova_data: date) -> models.Area:
    """Adianta ou reagenda a próxima vistoria; a área volta a ficar Agendada."""
    exigir_admin(db, uid)
    area = obter_area(db, area_id)
    if not agendamento.pode_reagendar(area.status):
        raise OperacaoInvalida("Não é possível reagendar uma área concluída.")
    if not isinstance(nova_data, date):
        raise DadosInvalidos("Por favor, selecione uma data.")
    return atualizar_area(db, uid, area_id, data_proxima_vistoria=nova_data,
                          status=agendamento.STATUS_AGENDADA)


def excluir_area(db: Session, uid: str, area_id: int):
    """Exclui a área e todas as suas vistorias."""
    exigir_admin(db, uid)
    area = obter_area(db, area_id)
    db.delete(area)
    db.commit()
    logger.info("Área %s excluída", area_id)
    notificar(db, {"event": "area_deleted", "areaId": area_id})

# =============================================================================
# 3. VISTORIAS
# =============================================================================

def registrar_vistoria(db: Session, uid: str, area_id: int, altura_cm: float,
                       observacoes: str = "", no_porte: bool = False, data: date = None) -> models.Vistoria:
    """Registra uma vistoria e aplica a transição de status da área."""
    tecnico = exigir_usuario(db, uid)
    area = obter_area(db, area_id)
    if not agendamento.pode_vistoriar(area.status):
        raise OperacaoInvalida("Esta área já está concluída.")
    try:
        altura_cm = float(altura_cm)
    except (TypeError, ValueError):
        raise DadosInvalidos("Altura é obrigatória.")
    if not math.isfinite(altura_cm) or altura_cm < 1:
        raise DadosInvalidos("Altura é obrigatória.")

    data = data or date.today()
    nova_vistoria = models.Vistoria(
        area_id=area.id,
        data=data,
        altura_cm=altura_cm,
        observacoes=observacoes or "",
        no_porte=bool(no_porte),
        tecnico_uid=tecnico.uid,
    )
    area.status, area.data_proxima_vistoria = agendamento.transicao_vistoria(data, bool(no_porte))
    db.add(nova_vistoria)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(nova_vistoria)
    logger.info("Vistoria registrada na área %s: %s cm, status %s", area.id, altura_cm, area.status)

    notificar(db, {"event": "status_updated", "areaId": area.id, "newStatus": area.status})
    return nova_vistoria

# =============================================================================
# 4. DESTINATÁRIOS DE E-MAIL
# =============================================================================

def listar_destinatarios(db: Session, uid: str):
    exigir_admin(db, uid)
    return [d.email for d in db.query(models.DestinatarioEmail).order_by(models.DestinatarioEmail.email)]


def adicionar_destinatario(db: Session, uid: str, email: str):
    exigir_admin(db, uid)
    email = _validar_email(email)
    if db.query(models.DestinatarioEmail).filter(models.DestinatarioEmail.email == email).first():
        raise DadosInvalidos("Este email já está na lista.")
    db.add(models.DestinatarioEmail(email=email))
    db.commit()
    return email


def remover_destinatario(db: Session, uid: str, email: str) -> bool:
    exigir_admin(db, uid)
    removidos = db.query(models.DestinatarioEmail).filter(
        models.DestinatarioEmail.email == (email or "").strip().lower()
    ).delete()
    db.commit()
    return removidos > 0
