# canacontrol/main.py
from datetime import date
from database import SessionLocal, engine, init_db
import config
import models
import operations
import populate_data
import reports

def main():
    config.configurar_logging()
    # Cria as tabelas no banco de dados
    init_db()

    # Obtém uma sessão do banco
    db = SessionLocal()

    # 1. SETUP INICIAL
    print("--- 1. Configurando usuários iniciais ---")
    admin = populate_data.criar_usuarios_iniciais(db)

    print("\n--- 2. Cadastrando uma área de demonstração ---")
    area = operations.criar_area(db, admin.uid, "S9/L99", "T90, T91", date(2025, 1, 10))
    print(f"Área {area.setor_lote} agendada para vistoria em {area.data_proxima_vistoria:%d/%m/%Y}")

    # 2. PRIMEIRA VISTORIA: cana abaixo do porte
    print("\n--- 3. Registrando vistoria fora do porte ---")
    tecnico = db.query(models.Usuario).filter(models.Usuario.perfil == models.PERFIL_TECNICO).first()
    operations.registrar_vistoria(db, tecnico.uid, area.id, 140, "Falhas de brotação no talhão T91.", False,
                                  data=area.data_proxima_vistoria)
    db.refresh(area)
    print(f"Status: {area.status} - nova vistoria em {area.data_proxima_vistoria:%d/%m/%Y}")

    # 3. REVISTORIA: cana no porte
    print("\n--- 4. Registrando revistoria no porte ---")
    operations.registrar_vistoria(db, tecnico.uid, area.id, 210, "Cana no porte.", True,
                                  data=area.data_proxima_vistoria)
    db.refresh(area)
    print(f"Status: {area.status}")

    # 4. GERAR RELATÓRIO
    print("\n--- 5. Gerando Relatórios ---")
    reports.gerar_relatorio_vistorias(engine)

    # Fechar a sessão
    db.close()

if __name__ == "__main__":
    main()
