import os
from datetime import date

from database import SessionLocal, init_db
import agendamento
import models
import operations

# =============================================================================
# 0. CONFIGURAÇÕES DA CARGA INICIAL
# =============================================================================
ADMIN_EMAIL = os.getenv("CANACONTROL_ADMIN_EMAIL", "admin@canacontrol.com")
ADMIN_SENHA = os.getenv("CANACONTROL_ADMIN_SENHA", "admin123")
TECNICO_EMAIL = "tech@canacontrol.com"
TECNICO_SENHA = "tecnico123"

AREAS_EXEMPLO = [
    {"setor_lote": "S1/L01", "talhoes": "T01, T02", "data_plantio": date(2024, 5, 10), "vistorias": []},
    {"setor_lote": "S2/L05", "talhoes": "T08", "data_plantio": date(2024, 4, 20),
     "vistorias": [(date(2024, 6, 20), 120, "Crescimento um pouco lento.", False)]},
    {"setor_lote": "S1/L02", "talhoes": "T03, T04, T05", "data_plantio": date(2024, 3, 15),
     "vistorias": [(date(2024, 6, 15), 180, "Tudo OK.", True)]},
]

# =============================================================================
# 1. FUNÇÕES AUXILIARES
# =============================================================================
def limpar_banco_de_dados(db_session):
    """Apaga todos os dados das tabelas para um novo preenchimento."""
    print("Limpando a base de dados...")
    # Ordem inversa para respeitar chaves estrangeiras
    db_session.query(models.EmailFila).delete()
    db_session.query(models.DestinatarioEmail).delete()
    db_session.query(models.Vistoria).delete()
    db_session.query(models.Area).delete()
    db_session.query(models.Usuario).delete()
    db_session.commit()


def criar_usuarios_iniciais(db):
    """Cria o administrador e o técnico de demonstração, se não existirem."""
    if db.query(models.Usuario).count() > 0:
        return db.query(models.Usuario).filter(models.Usuario.perfil == models.PERFIL_ADMIN).first()
    admin = operations.cadastrar_usuario(db, ADMIN_EMAIL, ADMIN_SENHA, "Admin", models.PERFIL_ADMIN, uid="admin-user")
    operations.cadastrar_usuario(db, TECNICO_EMAIL, TECNICO_SENHA, "Técnico", models.PERFIL_TECNICO, uid="tech-user")
    return admin


def criar_areas_exemplo(db, admin):
    for dados in AREAS_EXEMPLO:
        area = operations.criar_area(db, admin.uid, dados["setor_lote"], dados["talhoes"], dados["data_plantio"])
        for data_vistoria, altura, obs, no_porte in dados["vistorias"]:
            operations.registrar_vistoria(db, "tech-user", area.id, altura, obs, no_porte, data=data_vistoria)
    return db.query(models.Area).count()

# =============================================================================
# 2. FUNÇÃO PRINCIPAL
# =============================================================================
def main():
    init_db()
    db = SessionLocal()
    limpar_banco_de_dados(db)

    print("\n--- A criar usuários ---")
    admin = criar_usuarios_iniciais(db)
    print(f"Administrador: {ADMIN_EMAIL} / Técnico: {TECNICO_EMAIL}")

    print("\n--- A criar áreas de exemplo ---")
    total = criar_areas_exemplo(db, admin)
    print(f"{total} áreas criadas com sucesso.")
    for status in agendamento.STATUS_AREA:
        print(f" - {status}: {len(operations.listar_areas(db, status))}")

    db.close()
    print("\nProcesso de preenchimento de dados completo.")

if __name__ == "__main__":
    main()
