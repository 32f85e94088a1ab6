import logging
import re
from datetime import date

import requests

import config
from excecoes import DadosInvalidos

logger = logging.getLogger(__name__)

MENSAGEM_FALHA = "Não foi possível obter sugestões da IA."

PROMPT_SISTEMA = (
    "You are an experienced agricultural technician specializing in sugarcane inspections."
)

PROMPT_VISTORIA = """Based on the following information, provide a list of potential observations about the sugarcane's condition. Consider factors like height, date, and location to identify potential issues or areas of concern. Be specific and provide actionable insights.

Height: {altura_cm} cm
Inspection Date: {data_vistoria}
Sector: {setor}
Lote: {lote}
Talhoes: {talhoes}

Provide the observations as a numbered list."""


def separar_setor_lote(setor_lote: str):
    """'S1/L01' -> ('S1', 'L01'). Sem barra, o lote fica vazio."""
    partes = (setor_lote or "").split("/", 1)
    setor = partes[0].strip()
    lote = partes[1].strip() if len(partes) > 1 else ""
    return setor, lote


def montar_prompt(altura_cm, setor_lote, talhoes, data_vistoria=None):
    setor, lote = separar_setor_lote(setor_lote)
    return PROMPT_VISTORIA.format(
        altura_cm=altura_cm,
        data_vistoria=(data_vistoria or date.today()).isoformat(),
        setor=setor, lote=lote, talhoes=talhoes,
    )


def extrair_sugestoes(texto: str):
    """Converte a lista numerada retornada pelo modelo em uma lista de frases."""
    sugestoes = []
    for linha in (texto or "").splitlines():
        linha = re.sub(r"^\s*(\d+[\.\)]|[-*•])\s*", "", linha).strip()
        if linha:
            sugestoes.append(linha)
    return sugestoes


def sugerir_observacoes(altura_cm, setor_lote, talhoes, data_vistoria=None):
    """Pede ao serviço de IA sugestões de observação para a vistoria."""
    if not altura_cm or altura_cm <= 0:
        raise DadosInvalidos("Informe a altura para obter sugestões.")
    if not config.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY não configurada; sugestões desabilitadas.")
        return [MENSAGEM_FALHA]

    prompt = montar_prompt(altura_cm, setor_lote, talhoes, data_vistoria)
    try:
        response = requests.post(
            config.OPENAI_URL,
            headers={"Authorization": f"Bearer {config.OPENAI_API_KEY}", "Content-Type": "application/json"},
            json={
                "model": config.OPENAI_MODEL,
                "messages": [
                    {"role": "system", "content": PROMPT_SISTEMA},
                    {"role": "user", "content": prompt},
                ],
                "temperature": 0.3,
            },
            timeout=config.OPENAI_TIMEOUT,
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error("Erro ao consultar o serviço de IA: %s", e)
        return [MENSAGEM_FALHA]

    choices = payload.get("choices") or []
    conteudo = choices[0].get("message", {}).get("content", "") if choices else ""
    sugestoes = extrair_sugestoes(conteudo)
    if not sugestoes:
        logger.error("Serviço de IA retornou uma resposta vazia.")
        return [MENSAGEM_FALHA]
    return sugestoes
