# canacontrol/reports.py
import pandas as pd
from sqlalchemy import text

from agendamento import STATUS_AREA

COLUNAS_RELATORIO = {
    'setor_lote': 'Setor/Lote',
    'talhoes': 'Talhões',
    'data_plantio': 'Data Plantio',
    'data_proxima_vistoria': 'Próx. Vistoria',
    'status': 'Status',
    'num_vistorias': 'Nº Vistorias',
    'ultima_altura_cm': 'Última Altura (cm)',
}


def carregar_areas(db_engine):
    """Carrega as áreas com o número de vistorias e os dados da última vistoria."""
    query = """
    SELECT
        a.id as area_id,
        a.setor_lote,
        a.talhoes,
        a.data_plantio,
        a.data_proxima_vistoria,
        a.status,
        COUNT(v.id) as num_vistorias,
        MAX(v.data) as data_ultima_vistoria,
        (SELECT v2.altura_cm FROM vistorias v2
          WHERE v2.area_id = a.id
          ORDER BY v2.data DESC, v2.id DESC LIMIT 1) as ultima_altura_cm
    FROM areas a
    LEFT JOIN vistorias v ON v.area_id = a.id
    GROUP BY a.id, a.setor_lote, a.talhoes, a.data_plantio, a.data_proxima_vistoria, a.status
    ORDER BY a.data_proxima_vistoria, a.id;
    """
    df = pd.read_sql_query(text(query), db_engine)
    for col in ['data_plantio', 'data_proxima_vistoria', 'data_ultima_vistoria']:
        df[col] = pd.to_datetime(df[col], errors='coerce')
    return df


def filtrar_relatorio(df, area_id='all', status='all', data_inicio=None, data_fim=None):
    """Filtra por área, status e intervalo da data da próxima vistoria."""
    dff = df.copy()
    if area_id not in (None, 'all'):
        dff = dff[dff['area_id'] == int(area_id)]
    if status not in (None, 'all'):
        dff = dff[dff['status'] == status]
    if data_inicio is not None:
        dff = dff[dff['data_proxima_vistoria'] >= pd.to_datetime(data_inicio)]
    if data_fim is not None:
        dff = dff[dff['data_proxima_vistoria'] <= pd.to_datetime(data_fim)]
    return dff


def resumo_por_status(df):
    """Quantidade de áreas em cada status (todos os status aparecem, mesmo zerados)."""
    contagem = df['status'].value_counts() if not df.empty else pd.Series(dtype=int)
    return contagem.reindex(list(STATUS_AREA), fill_value=0).astype(int)


def formatar_tabela(df):
    """Prepara o DataFrame para exibição (datas em dd/mm/aaaa e colunas renomeadas)."""
    dff = df.copy()
    for col in ['data_plantio', 'data_proxima_vistoria']:
        dff[col] = dff[col].dt.strftime('%d/%m/%Y')
    return dff[list(COLUNAS_RELATORIO.keys())].rename(columns=COLUNAS_RELATORIO)


def gerar_relatorio_vistorias(db_engine):
    """Imprime o relatório de áreas e o resumo por status."""
    df = carregar_areas(db_engine)

    if df.empty:
        print("Nenhuma área cadastrada para gerar relatório.")
        return

    print("\n--- Relatório de Áreas ---")
    print(formatar_tabela(df).to_string(index=False))

    print("\n--- Áreas por Status ---")
    print(resumo_por_status(df))
