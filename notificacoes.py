import logging
import smtplib
from email.message import EmailMessage

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
import models

logger = logging.getLogger(__name__)

ASSUNTOS = {
    "area_created": "Nova área cadastrada",
    "area_updated": "Área atualizada",
    "area_deleted": "Área excluída",
    "status_updated": "Status de vistoria atualizado",
}

# =============================================================================
# 1. WEBHOOK
# =============================================================================

def enviar_webhook(payload: dict, url: str = None, api_key: str = None) -> bool:
    """Envia o evento ao webhook configurado. Nunca levanta exceção."""
    url = config.WEBHOOK_URL if url is None else url
    api_key = config.WEBHOOK_API_KEY if api_key is None else api_key
    if not url:
        return False
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=config.WEBHOOK_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.error("Falha ao notificar o webhook (%s): %s", payload.get("event"), e)
        return False
    if not response.ok:
        logger.error("Webhook respondeu com status %s: %s", response.status_code, response.text)
        return False
    logger.info("Webhook notificado: %s", payload.get("event"))
    return True

# =============================================================================
# 2. FILA DE E-MAIL
# =============================================================================

def montar_email(payload: dict):
    """Gera (assunto, html) para um evento."""
    evento = payload.get("event", "")
    assunto = f"CanaControl - {ASSUNTOS.get(evento, evento)}"
    linhas = []
    area = payload.get("area")
    if area:
        linhas.append(f"<p><strong>Área:</strong> {area.get('sectorLote')} ({area.get('plots')})</p>")
        linhas.append(f"<p><strong>Próxima vistoria:</strong> {area.get('nextInspectionDate')}</p>")
    if payload.get("areaId") is not None:
        linhas.append(f"<p><strong>Área nº:</strong> {payload['areaId']}</p>")
    if payload.get("newStatus"):
        linhas.append(f"<p><strong>Novo status:</strong> {payload['newStatus']}</p>")
    if payload.get("changes"):
        itens = "".join(f"<li>{campo}: {valor}</li>" for campo, valor in payload["changes"].items())
        linhas.append(f"<ul>{itens}</ul>")
    html = f"<h3>{ASSUNTOS.get(evento, evento)}</h3>" + "".join(linhas)
    return assunto, html


def enfileirar_emails(db: Session, payload: dict) -> int:
    """Cria um documento na fila de e-mail para cada destinatário cadastrado."""
    destinatarios = [d.email for d in db.query(models.DestinatarioEmail).order_by(models.DestinatarioEmail.email)]
    if not destinatarios:
        return 0
    assunto, html = montar_email(payload)
    try:
        db.add_all([models.EmailFila(para=email, assunto=assunto, html=html) for email in destinatarios])
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Falha ao enfileirar e-mails (%s): %s", payload.get("event"), e)
        return 0
    return len(destinatarios)


def notificar(db: Session, payload: dict):
    """Dispara o webhook e enfileira os e-mails. Erros são apenas registrados no log."""
    try:
        enviar_webhook(payload)
        enfileirar_emails(db, payload)
    except Exception:
        # a gravação principal já foi confirmada
        logger.exception("Erro inesperado ao notificar o evento %s", payload.get("event"))


def enviar_email_smtp(para: str, assunto: str, html: str):
    msg = EmailMessage()
    msg["Subject"] = assunto
    msg["From"] = f"{config.REMETENTE_NOME} <{config.SMTP_USER}>"
    msg["To"] = para
    msg.set_content("Este e-mail requer um cliente com suporte a HTML.")
    msg.add_alternative(html, subtype="html")
    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30) as smtp:
        smtp.starttls()
        if config.SMTP_USER:
            smtp.login(config.SMTP_USER, config.SMTP_PASSWORD)
        smtp.send_message(msg)


def processar_fila_email(db: Session, enviar=enviar_email_smtp) -> dict:
    """Envia os e-mails pendentes e marca cada um como SUCCESS ou ERROR."""
    pendentes = db.query(models.EmailFila).filter(
        models.EmailFila.estado_entrega == models.ENTREGA_PENDENTE
    ).order_by(models.EmailFila.id).all()
    resultado = {"enviados": 0, "falhas": 0}
    for item in pendentes:
        try:
            enviar(item.para, item.assunto, item.html)
        except Exception as e:
            logger.error("Erro ao enviar e-mail para %s: %s", item.para, e)
            item.estado_entrega = models.ENTREGA_ERRO
            item.erro_entrega = str(e)
            resultado["falhas"] += 1
        else:
            logger.info("E-mail enviado com sucesso para %s", item.para)
            item.estado_entrega = models.ENTREGA_SUCESSO
            item.erro_entrega = None
            resultado["enviados"] += 1
        db.commit()
    return resultado


if __name__ == "__main__":
    from database import SessionLocal, init_db

    config.configurar_logging()
    init_db()
    db = SessionLocal()
    print("--- Processando a fila de e-mails ---")
    print(processar_fila_email(db))
    db.close()
