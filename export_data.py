import sys

import pandas as pd

from database import engine
from reports import carregar_areas, formatar_tabela

TABELAS_PARA_EXPORTAR = ['areas', 'vistorias', 'destinatarios_email', 'fila_email']


def export_tables_to_csv(db_engine=engine, pasta='.'):
    """
    Exporta as tabelas do CanaControl e o relatório de áreas para arquivos CSV.
    Os usuários não são exportados (contêm hash de senha).
    """
    arquivos = []
    for nome_tabela in TABELAS_PARA_EXPORTAR:
        print(f"Exportando tabela '{nome_tabela}'...")
        df = pd.read_sql_table(nome_tabela, db_engine)
        nome_arquivo_csv = f"{pasta}/db_{nome_tabela}.csv"
        df.to_csv(nome_arquivo_csv, index=False)
        arquivos.append(nome_arquivo_csv)
        print(f" -> Tabela '{nome_tabela}' salva como '{nome_arquivo_csv}'")

    nome_relatorio = f"{pasta}/relatorio_areas.csv"
    formatar_tabela(carregar_areas(db_engine)).to_csv(nome_relatorio, index=False)
    arquivos.append(nome_relatorio)
    print(f" -> Relatório de áreas salvo como '{nome_relatorio}'")
    return arquivos


if __name__ == "__main__":
    try:
        export_tables_to_csv()
        print("\nExportação de todas as tabelas concluída com sucesso!")
    except Exception as e:
        print(f"Ocorreu um erro durante a exportação: {e}", file=sys.stderr)
        print("Certifique-se de que o banco do CanaControl foi criado (execute 'python main.py').", file=sys.stderr)
        sys.exit(1)
