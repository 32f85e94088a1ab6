from datetime import date

import pytest
import requests

import config
import sugestoes
from conftest import RespostaFalsa
from excecoes import DadosInvalidos


def test_separar_setor_lote():
    assert sugestoes.separar_setor_lote("S1/L01") == ("S1", "L01")
    assert sugestoes.separar_setor_lote("S3") == ("S3", "")


def test_montar_prompt():
    prompt = sugestoes.montar_prompt(150, "S1/L01", "T01, T02", date(2024, 8, 8))
    assert "Height: 150 cm" in prompt
    assert "Inspection Date: 2024-08-08" in prompt
    assert "Sector: S1" in prompt
    assert "Lote: L01" in prompt
    assert "Talhoes: T01, T02" in prompt


def test_extrair_sugestoes():
    texto = "1. Verificar falhas de brotação.\n2) Avaliar presença de cigarrinha.\n\n- Conferir irrigação."
    assert sugestoes.extrair_sugestoes(texto) == [
        "Verificar falhas de brotação.",
        "Avaliar presença de cigarrinha.",
        "Conferir irrigação.",
    ]


@pytest.mark.parametrize("altura", [0, -5, None])
def test_altura_obrigatoria(altura):
    with pytest.raises(DadosInvalidos):
        sugestoes.sugerir_observacoes(altura, "S1/L01", "T01")


def test_sem_chave_retorna_mensagem_padrao():
    assert sugestoes.sugerir_observacoes(150, "S1/L01", "T01") == [sugestoes.MENSAGEM_FALHA]


def test_sugestoes_do_servico(monkeypatch):
    enviado = {}

    def post_falso(url, headers=None, json=None, timeout=None):
        enviado.update(url=url, headers=headers, json=json)
        return RespostaFalsa(200, {"choices": [{"message": {"content": "1. Altura abaixo do esperado.\n2. Verificar adubação."}}]})

    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-teste")
    monkeypatch.setattr(sugestoes.requests, "post", post_falso)
    resultado = sugestoes.sugerir_observacoes(150, "S1/L01", "T01", date(2024, 8, 8))

    assert resultado == ["Altura abaixo do esperado.", "Verificar adubação."]
    assert enviado["headers"]["Authorization"] == "Bearer sk-teste"
    assert enviado["json"]["model"] == config.OPENAI_MODEL
    assert "Sector: S1" in enviado["json"]["messages"][-1]["content"]


@pytest.mark.parametrize("resposta", [
    RespostaFalsa(503),
    RespostaFalsa(200, {"choices": []}),
    RespostaFalsa(200, {"choices": [{"message": {"content": "   "}}]}),
])
def test_falhas_do_servico_retornam_mensagem_padrao(monkeypatch, resposta):
    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-teste")
    monkeypatch.setattr(sugestoes.requests, "post", lambda *a, **k: resposta)
    assert sugestoes.sugerir_observacoes(150, "S1/L01", "T01") == [sugestoes.MENSAGEM_FALHA]


def test_erro_de_rede_retorna_mensagem_padrao(monkeypatch):
    def post_falho(*args, **kwargs):
        raise requests.exceptions.Timeout("timeout")

    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-teste")
    monkeypatch.setattr(sugestoes.requests, "post", post_falho)
    assert sugestoes.sugerir_observacoes(150, "S1/L01", "T01") == [sugestoes.MENSAGEM_FALHA]
