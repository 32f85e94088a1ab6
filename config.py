# canacontrol/config.py
import logging
import os
import secrets

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# 0. BANCO DE DADOS
# =============================================================================
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///canacontrol.db")

# =============================================================================
# 1. NOTIFICAÇÕES (WEBHOOK E E-MAIL)
# =============================================================================
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "").strip()
WEBHOOK_API_KEY = os.getenv("WEBHOOK_API_KEY", "").strip()
WEBHOOK_TIMEOUT = float(os.getenv("WEBHOOK_TIMEOUT", "10"))

SMTP_HOST = os.getenv("SMTP_HOST", "smtp-mail.outlook.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
REMETENTE_NOME = "CanaControl"

# =============================================================================
# 2. SUGESTÕES COM IA
# =============================================================================
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
OPENAI_URL = os.getenv("OPENAI_URL", "https://api.openai.com/v1/chat/completions")
OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "30"))

# =============================================================================
# 3. APLICAÇÃO WEB E LOGS
# =============================================================================
# Sem SECRET_KEY as sessões do dashboard não sobrevivem a um reinício
SECRET_KEY = os.getenv("SECRET_KEY", "").strip() or secrets.token_hex(32)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configurar_logging(nivel=None):
    """Configura o logging da aplicação uma única vez."""
    logging.basicConfig(level=nivel or LOG_LEVEL, format=LOG_FORMAT)
    # Silencia o log de requisições do servidor de desenvolvimento
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
