from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

import agendamento
import models
import operations
from excecoes import (NaoAutenticado, PermissaoNegada, AreaNaoEncontrada,
                      DadosInvalidos, OperacaoInvalida)


@pytest.fixture
def area(db, admin):
    return operations.criar_area(db, admin.uid, "S1/L01", "T01, T02", date(2024, 5, 10))


# --- usuários ---

def test_autenticar(db, admin):
    assert operations.autenticar(db, "ADMIN@canacontrol.com ", "admin123").uid == admin.uid
    assert operations.autenticar(db, "admin@canacontrol.com", "errada") is None
    assert operations.autenticar(db, "ninguem@canacontrol.com", "admin123") is None


def test_senha_guardada_como_hash(admin):
    assert admin.senha_hash != "admin123"


def test_criar_usuario_padrao_tecnico(db, admin):
    novo = operations.criar_usuario(db, admin.uid, "novo@canacontrol.com", "segredo")
    assert novo.perfil == models.PERFIL_TECNICO
    assert novo.nome == "novo"


def test_criar_usuario_exige_admin(db, tecnico):
    with pytest.raises(PermissaoNegada):
        operations.criar_usuario(db, tecnico.uid, "novo@canacontrol.com", "segredo")


@pytest.mark.parametrize("email,senha", [("invalido", "segredo"), ("ok@canacontrol.com", "123")])
def test_criar_usuario_valida_dados(db, admin, email, senha):
    with pytest.raises(DadosInvalidos):
        operations.criar_usuario(db, admin.uid, email, senha)


def test_criar_usuario_email_duplicado(db, admin, tecnico):
    with pytest.raises(DadosInvalidos):
        operations.criar_usuario(db, admin.uid, "tech@canacontrol.com", "segredo")
    assert db.query(models.Usuario).count() == 2


# --- áreas ---

def test_criar_area_agenda_primeira_vistoria(area):
    assert area.status == agendamento.STATUS_AGENDADA
    assert area.data_proxima_vistoria == date(2024, 8, 8)
    assert area.vistorias == []


def test_criar_area_sem_usuario(db):
    with pytest.raises(NaoAutenticado):
        operations.criar_area(db, "desconhecido", "S1/L01", "T01", date(2024, 5, 10))


def test_criar_area_exige_admin(db, tecnico):
    with pytest.raises(PermissaoNegada):
        operations.criar_area(db, tecnico.uid, "S1/L01", "T01", date(2024, 5, 10))
    assert db.query(models.Area).count() == 0


def test_criar_area_campos_obrigatorios(db, admin):
    with pytest.raises(DadosInvalidos):
        operations.criar_area(db, admin.uid, "  ", "T01", date(2024, 5, 10))
    with pytest.raises(DadosInvalidos):
        operations.criar_area(db, admin.uid, "S1/L01", "T01", None)


def test_listar_areas_ordenadas_pela_proxima_vistoria(db, admin):
    operations.criar_area(db, admin.uid, "S1/L01", "T01", date(2024, 5, 10))
    operations.criar_area(db, admin.uid, "S1/L02", "T03", date(2024, 3, 15))
    assert [a.setor_lote for a in operations.listar_areas(db)] == ["S1/L02", "S1/L01"]
    assert operations.listar_areas(db, agendamento.STATUS_CONCLUIDA) == []


def test_obter_area_inexistente(db):
    with pytest.raises(AreaNaoEncontrada):
        operations.obter_area(db, 999)


def test_atualizar_area_recalcula_primeira_vistoria(db, admin, area):
    atualizada = operations.atualizar_area(db, admin.uid, area.id, data_plantio=date(2024, 6, 1), talhoes="T09")
    assert atualizada.talhoes == "T09"
    assert atualizada.data_proxima_vistoria == date(2024, 8, 30)


def test_atualizar_area_com_vistorias_mantem_proxima_data(db, admin, tecnico, area):
    operations.registrar_vistoria(db, tecnico.uid, area.id, 120, "", False, data=date(2024, 8, 8))
    atualizada = operations.atualizar_area(db, admin.uid, area.id, data_plantio=date(2024, 6, 1))
    assert atualizada.data_proxima_vistoria == date(2024, 8, 28)


def test_atualizar_area_rejeita_status_e_campos_invalidos(db, admin, area):
    with pytest.raises(DadosInvalidos):
        operations.atualizar_area(db, admin.uid, area.id, status="Cancelada")
    with pytest.raises(DadosInvalidos):
        operations.atualizar_area(db, admin.uid, area.id, id=42)


def test_atualizar_area_exige_admin(db, tecnico, area):
    with pytest.raises(PermissaoNegada):
        operations.atualizar_area(db, tecnico.uid, area.id, talhoes="T99")


def test_excluir_area_remove_vistorias(db, admin, tecnico, area):
    operations.registrar_vistoria(db, tecnico.uid, area.id, 120, "", False)
    operations.excluir_area(db, admin.uid, area.id)
    assert db.query(models.Area).count() == 0
    assert db.query(models.Vistoria).count() == 0


def test_excluir_area_exige_admin(db, tecnico, area):
    with pytest.raises(PermissaoNegada):
        operations.excluir_area(db, tecnico.uid, area.id)


# --- vistorias ---

def test_vistoria_fora_do_porte_agenda_revistoria(db, tecnico, area):
    vistoria = operations.registrar_vistoria(db, tecnico.uid, area.id, 140, "Falhas de brotação", False, data=date(2024, 8, 8))
    db.refresh(area)
    assert vistoria.tecnico_uid == tecnico.uid
    assert area.status == agendamento.STATUS_PENDENTE
    assert area.data_proxima_vistoria == date(2024, 8, 28)


def test_vistoria_no_porte_conclui_area(db, tecnico, area):
    operations.registrar_vistoria(db, tecnico.uid, area.id, 210, "", True, data=date(2024, 8, 8))
    db.refresh(area)
    assert area.status == agendamento.STATUS_CONCLUIDA
    with pytest.raises(OperacaoInvalida):
        operations.registrar_vistoria(db, tecnico.uid, area.id, 220, "", True)
    assert len(area.vistorias) == 1


def test_vistoria_data_padrao_hoje(db, tecnico, area):
    vistoria = operations.registrar_vistoria(db, tecnico.uid, area.id, 100)
    db.refresh(area)
    assert vistoria.data == date.today()
    assert area.data_proxima_vistoria == date.today() + timedelta(days=20)


@pytest.mark.parametrize("altura", [0, None, "abc", "nan", float("inf")])
def test_vistoria_altura_invalida(db, tecnico, area, altura):
    with pytest.raises(DadosInvalidos):
        operations.registrar_vistoria(db, tecnico.uid, area.id, altura)
    db.refresh(area)
    assert area.status == agendamento.STATUS_AGENDADA


def test_vistoria_exige_usuario(db, area):
    with pytest.raises(NaoAutenticado):
        operations.registrar_vistoria(db, None, area.id, 100)


def test_ultima_vistoria_mais_recente_primeiro(db, tecnico, area):
    operations.registrar_vistoria(db, tecnico.uid, area.id, 120, "", False, data=date(2024, 8, 8))
    operations.registrar_vistoria(db, tecnico.uid, area.id, 150, "", False, data=date(2024, 8, 28))
    db.refresh(area)
    assert area.ultima_vistoria.altura_cm == 150
    assert [v["heightCm"] for v in area.to_dict()["inspections"]] == [150, 120]


# --- reagendamento ---

def test_reagendar_volta_para_agendada(db, admin, tecnico, area):
    operations.registrar_vistoria(db, tecnico.uid, area.id, 120, "", False, data=date(2024, 8, 8))
    area = operations.reagendar_vistoria(db, admin.uid, area.id, date(2024, 8, 15))
    assert area.status == agendamento.STATUS_AGENDADA
    assert area.data_proxima_vistoria == date(2024, 8, 15)


def test_reagendar_area_concluida(db, admin, tecnico, area):
    operations.registrar_vistoria(db, tecnico.uid, area.id, 210, "", True)
    with pytest.raises(OperacaoInvalida):
        operations.reagendar_vistoria(db, admin.uid, area.id, date(2024, 9, 1))


def test_reagendar_exige_admin(db, tecnico, area):
    with pytest.raises(PermissaoNegada):
        operations.reagendar_vistoria(db, tecnico.uid, area.id, date(2024, 9, 1))


# --- destinatários ---

def test_destinatarios(db, admin):
    assert operations.adicionar_destinatario(db, admin.uid, " Gestor@Usina.com ") == "gestor@usina.com"
    operations.adicionar_destinatario(db, admin.uid, "campo@usina.com")
    assert operations.listar_destinatarios(db, admin.uid) == ["campo@usina.com", "gestor@usina.com"]
    with pytest.raises(DadosInvalidos, match="já está na lista"):
        operations.adicionar_destinatario(db, admin.uid, "gestor@usina.com")
    assert operations.remover_destinatario(db, admin.uid, "gestor@usina.com")
    assert not operations.remover_destinatario(db, admin.uid, "gestor@usina.com")
    assert operations.listar_destinatarios(db, admin.uid) == ["campo@usina.com"]


def test_destinatarios_exige_admin(db, tecnico):
    with pytest.raises(PermissaoNegada):
        operations.listar_destinatarios(db, tecnico.uid)
    with pytest.raises(PermissaoNegada):
        operations.adicionar_destinatario(db, tecnico.uid, "campo@usina.com")


def test_admin_tambem_registra_vistoria(db, admin, area):
    vistoria = operations.registrar_vistoria(db, admin.uid, area.id, 130, "", False, data=date(2024, 8, 8))
    assert vistoria.tecnico_uid == admin.uid


def test_falha_ao_gravar_vistoria_desfaz_transicao(db, tecnico, area, monkeypatch):
    def commit_falho():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    with monkeypatch.context() as m:
        m.setattr(db, "commit", commit_falho)
        with pytest.raises(OperationalError):
            operations.registrar_vistoria(db, tecnico.uid, area.id, 210, "", True)
    assert area.status == agendamento.STATUS_AGENDADA
    assert db.query(models.Vistoria).count() == 0


@pytest.mark.parametrize("campo,valor", [
    ("data_plantio", None),
    ("data_plantio", "2024-06-01"),
    ("data_proxima_vistoria", None),
    ("data_proxima_vistoria", "2024-09-01"),
])
def test_atualizar_area_exige_datas_validas(db, admin, area, campo, valor):
    with pytest.raises(DadosInvalidos):
        operations.atualizar_area(db, admin.uid, area.id, **{campo: valor})
    # a sessão continua utilizável depois do erro
    db.refresh(area)
    assert area.data_plantio == date(2024, 5, 10)
    assert area.data_proxima_vistoria == date(2024, 8, 8)
    assert operations.atualizar_area(db, admin.uid, area.id, talhoes="T09").talhoes == "T09"


def test_vistoria_invalida_nao_trava_a_sessao(db, tecnico, area):
    with pytest.raises(DadosInvalidos):
        operations.registrar_vistoria(db, tecnico.uid, area.id, "nan")
    vistoria = operations.registrar_vistoria(db, tecnico.uid, area.id, 150, "", False, data=date(2024, 8, 8))
    assert vistoria.id is not None


# --- troca de senha ---

def test_alterar_senha(db, tecnico):
    operations.alterar_senha(db, tecnico.uid, "tecnico123", "novasenha")
    assert operations.autenticar(db, "tech@canacontrol.com", "novasenha").uid == tecnico.uid
    assert operations.autenticar(db, "tech@canacontrol.com", "tecnico123") is None


def test_alterar_senha_confere_senha_atual(db, tecnico):
    with pytest.raises(DadosInvalidos, match="senha atual está incorreta"):
        operations.alterar_senha(db, tecnico.uid, "errada", "novasenha")
    assert operations.autenticar(db, "tech@canacontrol.com", "tecnico123") is not None


def test_alterar_senha_tamanho_minimo(db, tecnico):
    with pytest.raises(DadosInvalidos, match="no mínimo 6 caracteres"):
        operations.alterar_senha(db, tecnico.uid, "tecnico123", "123")


def test_alterar_senha_exige_usuario(db):
    with pytest.raises(NaoAutenticado):
        operations.alterar_senha(db, None, "tecnico123", "novasenha")
