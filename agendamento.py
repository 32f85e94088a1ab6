"""Regras de status e agendamento das vistorias de cana.

Ciclo de vida de uma área:

    Agendada --(vistoria, cana fora do porte)--> Pendente  (+20 dias)
    Agendada/Pendente --(vistoria, cana no porte)--> Concluída
"""
from datetime import date, timedelta

STATUS_AGENDADA = "Agendada"
STATUS_PENDENTE = "Pendente"
STATUS_CONCLUIDA = "Concluída"
STATUS_AREA = (STATUS_AGENDADA, STATUS_PENDENTE, STATUS_CONCLUIDA)

DIAS_PRIMEIRA_VISTORIA = 90
DIAS_REVISTORIA = 20


def calcular_primeira_vistoria(data_plantio: date) -> date:
    """Primeira vistoria: 90 dias após o plantio."""
    return data_plantio + timedelta(days=DIAS_PRIMEIRA_VISTORIA)


def transicao_vistoria(data_vistoria: date, no_porte: bool):
    """Retorna (novo_status, data_proxima_vistoria) após registrar uma vistoria.

    A próxima data é sempre recalculada; para uma área concluída ela fica
    apenas como registro.
    """
    proxima = data_vistoria + timedelta(days=DIAS_REVISTORIA)
    if no_porte:
        return STATUS_CONCLUIDA, proxima
    return STATUS_PENDENTE, proxima


def pode_vistoriar(status: str) -> bool:
    return status != STATUS_CONCLUIDA


def pode_reagendar(status: str) -> bool:
    return status != STATUS_CONCLUIDA


def vistoria_atrasada(status: str, data_proxima_vistoria: date, hoje: date = None) -> bool:
    if status == STATUS_CONCLUIDA or data_proxima_vistoria is None:
        return False
    hoje = hoje or date.today()
    return hoje > data_proxima_vistoria
