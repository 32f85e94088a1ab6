import logging
from datetime import date

import dash
from dash import dcc, html, dash_table, ctx
from dash.dependencies import Input, Output, State, ALL
from dash.exceptions import PreventUpdate
import plotly.express as px
import plotly.graph_objects as go
from dateutil.relativedelta import relativedelta
import dash_bootstrap_components as dbc
from flask import session

import agendamento
import config
import operations
import reports
import sugestoes
from database import SessionLocal, engine, init_db
from excecoes import ErroCanaControl

logger = logging.getLogger(__name__)

# =============================================================================
# 1. ESTILOS E INICIALIZAÇÃO DO APP
# =============================================================================
colors = {'background': '#1E1E1E', 'text': '#FFFFFF', 'grid': '#333333', 'primary': '#00AEEF', 'card_background': '#252525'}
CORES_STATUS = {agendamento.STATUS_AGENDADA: 'primary', agendamento.STATUS_PENDENTE: 'warning', agendamento.STATUS_CONCLUIDA: 'success'}
ABAS_STATUS = [('Agendadas', agendamento.STATUS_AGENDADA), ('Pendentes', agendamento.STATUS_PENDENTE), ('Concluídas', agendamento.STATUS_CONCLUIDA)]

app = dash.Dash(__name__, external_stylesheets=[dbc.themes.DARKLY, dbc.icons.FONT_AWESOME], suppress_callback_exceptions=True)
app.title = 'CanaControl'
server = app.server
server.secret_key = config.SECRET_KEY

# =============================================================================
# 2. FUNÇÕES AUXILIARES
# =============================================================================
def formatar_data(valor):
    return valor.strftime('%d/%m/%Y') if valor else '-'


def parse_data(valor):
    """Converte o valor de um DatePicker ('AAAA-MM-DD' ou com horário) em date."""
    if not valor:
        return None
    if isinstance(valor, date):
        return valor
    return date.fromisoformat(str(valor)[:10])


def clique_valido():
    """Ignora disparos causados apenas pela criação de botões dinâmicos (n_clicks vazio)."""
    return bool(ctx.triggered_id) and bool(ctx.triggered and ctx.triggered[0].get('value'))


def uid_sessao():
    """Usuário logado, lido do cookie de sessão assinado pelo Flask."""
    return session.get('uid')


def executar(funcao, *args, **kwargs):
    """Executa uma operação numa sessão própria. Retorna (resultado, mensagem_de_erro)."""
    with SessionLocal() as db:
        try:
            return funcao(db, *args, **kwargs), None
        except ErroCanaControl as e:
            return None, str(e)


def alerta(mensagem, cor='success'):
    return dbc.Alert(mensagem, color=cor, dismissable=True, duration=5000)


def criar_navbar(usuario):
    links = [dbc.NavItem(dbc.NavLink('Áreas', href='/', active='exact'))]
    if usuario.is_admin:
        links += [
            dbc.NavItem(dbc.NavLink('Relatórios', href='/relatorios', active='exact')),
            dbc.NavItem(dbc.NavLink('Configurações', href='/configuracoes', active='exact')),
        ]
    links += [
        dbc.NavItem(html.Span(f"{usuario.nome} ({usuario.perfil})", className='navbar-text mx-3')),
        dbc.NavItem(dbc.Button([html.I(className='fa fa-key me-1'), 'Alterar Senha'], id='btn-alterar-senha', color='link', size='sm', className='mt-1')),
        dbc.NavItem(dbc.Button([html.I(className='fa fa-sign-out-alt me-1'), 'Sair'], id='btn-sair', color='secondary', size='sm', className='mt-1')),
    ]
    return dbc.NavbarSimple(children=links, brand='🌱 CanaControl', brand_href='/', color='dark', dark=True, className='mb-3')


def criar_card_area(area, usuario, hoje=None):
    """Card de uma área com status, datas e ações disponíveis para o usuário."""
    concluida = area.status == agendamento.STATUS_CONCLUIDA
    atrasada = agendamento.vistoria_atrasada(area.status, area.data_proxima_vistoria, hoje)
    ultima = area.ultima_vistoria

    acoes = []
    if usuario.is_admin:
        acoes.append(dbc.Button(html.I(className='fa fa-pen'), id={'type': 'btn-editar', 'index': area.id}, color='link', size='sm', title='Editar'))
        if agendamento.pode_reagendar(area.status):
            acoes.append(dbc.Button(html.I(className='fa fa-calendar-plus'), id={'type': 'btn-reagendar', 'index': area.id}, color='link', size='sm', title='Adiantar/Reagendar'))
        acoes.append(dbc.Button(html.I(className='fa fa-trash'), id={'type': 'btn-excluir', 'index': area.id}, color='link', size='sm', className='text-danger', title='Excluir'))

    corpo = [
        html.P([html.I(className='fa fa-seedling me-2'), f"Plantio: {formatar_data(area.data_plantio)}"], className='mb-1'),
        html.P([html.I(className='fa fa-calendar-day me-2'), f"Próx. Vistoria: {formatar_data(area.data_proxima_vistoria)}"],
               className='mb-1 text-danger fw-bold' if atrasada else 'mb-1'),
    ]
    if ultima is not None:
        corpo.append(html.Small(f"Última vistoria: {formatar_data(ultima.data)} - {ultima.altura_cm:.0f} cm", className='text-muted'))

    return dbc.Card([
        dbc.CardHeader(html.Div([
            html.Div([
                dbc.Badge(area.status, color=CORES_STATUS.get(area.status, 'secondary')),
                html.H5(area.setor_lote, className='card-title mt-2 mb-0'),
                html.Small(area.talhoes, className='text-muted'),
            ]),
            html.Div(acoes),
        ], className='d-flex justify-content-between align-items-start')),
        dbc.CardBody(corpo),
        dbc.CardFooter(dbc.Button([html.I(className='fa fa-clipboard-list me-2'), 'Vistoriar'],
                                  id={'type': 'btn-vistoriar', 'index': area.id}, color='primary',
                                  className='w-100', disabled=concluida)),
    ], className='h-100')


def criar_lista_areas(areas, usuario, hoje=None):
    if not areas:
        return html.Div([
            html.H4('Nenhuma área encontrada'),
            html.P('Adicione uma nova área para começar.', className='text-muted'),
        ], className='text-center p-5 border rounded')
    return dbc.Row([dbc.Col(criar_card_area(area, usuario, hoje), lg=3, md=6, className='mb-4') for area in areas])

# =============================================================================
# 3. LAYOUTS
# =============================================================================
def layout_login():
    return dbc.Row(dbc.Col(dbc.Card([
        dbc.CardHeader(html.H3('🌱 CanaControl', className='text-center')),
        dbc.CardBody([
            dbc.Label('Email'),
            dbc.Input(id='login-email', type='email', placeholder='tecnico@canacontrol.com'),
            dbc.Label('Senha', className='mt-2'),
            dbc.Input(id='login-senha', type='password', n_submit=0),
            dbc.Button('Entrar', id='btn-login', color='primary', className='w-100 mt-3'),
            html.Div(id='login-feedback', className='mt-2'),
        ]),
    ]), md=4), justify='center', className='mt-5')


def layout_home(db, usuario):
    areas = operations.listar_areas(db)
    cabecalho = [html.H2('Áreas de Cana', className='mb-0')]
    if usuario.is_admin:
        cabecalho.append(dbc.Button([html.I(className='fa fa-plus me-2'), 'Adicionar Área'], id='btn-nova-area', color='primary'))
    abas = [
        dbc.Tab(criar_lista_areas([a for a in areas if a.status == status], usuario), label=f"{rotulo} ({sum(1 for a in areas if a.status == status)})", tab_id=status)
        for rotulo, status in ABAS_STATUS
    ]
    return html.Div([
        html.Div(cabecalho, className='d-flex justify-content-between align-items-center mb-3'),
        dbc.Tabs(abas, active_tab=agendamento.STATUS_AGENDADA, className='mb-3'),
    ])


def layout_relatorios(db):
    areas = operations.listar_areas(db)
    hoje = date.today()
    return html.Div([
        html.H2('Relatórios de Vistoria', className='mb-3'),
        dbc.Row([
            dbc.Col([
                html.Label('Área (Setor/Lote):', style={'fontWeight': 'bold'}),
                dcc.Dropdown(id='filtro-area', options=[{'label': 'Todas as áreas', 'value': 'all'}] + [{'label': a.setor_lote, 'value': a.id} for a in areas], value='all', clearable=False, style={'color': '#000'}),
            ], md=4),
            dbc.Col([
                html.Label('Status:', style={'fontWeight': 'bold'}),
                dcc.Dropdown(id='filtro-status', options=[{'label': 'Todos', 'value': 'all'}] + [{'label': s, 'value': s} for s in agendamento.STATUS_AREA], value='all', clearable=False, style={'color': '#000'}),
            ], md=4),
            dbc.Col([
                html.Label('Data da Próxima Vistoria:', style={'fontWeight': 'bold'}),
                dcc.DatePickerRange(id='filtro-datas', start_date=None, end_date=None,
                                    initial_visible_month=hoje - relativedelta(months=1),
                                    display_format='DD/MM/YYYY', clearable=True),
            ], md=4),
        ], className='mb-3'),
        dcc.Graph(id='grafico-status'),
        html.Hr(),
        dash_table.DataTable(id='tabela-relatorio', page_size=15, sort_action='native',
                             style_header={'backgroundColor': colors['card_background'], 'fontWeight': 'bold'},
                             style_cell={'backgroundColor': colors['background'], 'color': colors['text'], 'textAlign': 'left'}),
        html.Div(id='relatorio-vazio', className='mt-2'),
    ])


def layout_configuracoes(db, usuario):
    destinatarios = operations.listar_destinatarios(db, usuario.uid)
    lista = dbc.ListGroup([
        dbc.ListGroupItem(html.Div([
            html.Span([html.I(className='fa fa-envelope me-2'), email]),
            dbc.Button(html.I(className='fa fa-times'), id={'type': 'btn-remover-email', 'index': email}, color='link', size='sm', className='text-danger'),
        ], className='d-flex justify-content-between align-items-center'))
        for email in destinatarios
    ]) if destinatarios else html.P('Nenhum email cadastrado.', className='text-muted')

    return html.Div([
        html.H2('Configurações', className='mb-3'),
        dbc.Card([
            dbc.CardHeader('Notificações por Email'),
            dbc.CardBody([
                html.P('Adicione ou remova os endereços de e-mail que devem receber notificações sobre as vistorias.', className='text-muted'),
                dbc.InputGroup([
                    dbc.Input(id='novo-email', placeholder='nome@exemplo.com'),
                    dbc.Button('Adicionar', id='btn-add-email', color='primary'),
                ], className='mb-3'),
                lista,
            ]),
        ], className='mb-4'),
        dbc.Card([
            dbc.CardHeader('Criar Novo Usuário'),
            dbc.CardBody([
                dbc.Row([
                    dbc.Col(dbc.Input(id='novo-usuario-email', type='email', placeholder='tecnico@canacontrol.com'), md=4),
                    dbc.Col(dbc.Input(id='novo-usuario-senha', type='password', placeholder='Senha (mín. 6 caracteres)'), md=3),
                    dbc.Col(dcc.Dropdown(id='novo-usuario-perfil', options=[{'label': 'Técnico', 'value': 'technician'}, {'label': 'Administrador', 'value': 'admin'}], value='technician', clearable=False, style={'color': '#000'}), md=3),
                    dbc.Col(dbc.Button([html.I(className='fa fa-user-plus me-2'), 'Criar'], id='btn-criar-usuario', color='primary', className='w-100'), md=2),
                ]),
            ]),
        ]),
    ])


def layout_acesso_negado():
    return dbc.Alert('Acesso restrito a administradores.', color='danger')


modal_vistoria = dbc.Modal([
    dbc.ModalHeader(dbc.ModalTitle('Realizar Vistoria')),
    dbc.ModalBody([
        html.P(id='vistoria-descricao', className='text-muted'),
        dbc.Label('Altura da Cana (cm)'),
        dbc.Input(id='vistoria-altura', type='number', min=0, placeholder='Ex: 150'),
        html.Div([
            dbc.Label('Observações', className='mb-0'),
            dbc.Button([html.I(className='fa fa-magic me-1'), 'Sugerir'], id='btn-sugerir', color='link', size='sm'),
        ], className='d-flex justify-content-between align-items-center mt-2'),
        dcc.Loading(dbc.Textarea(id='vistoria-observacoes', placeholder='Descreva o que foi observado...', style={'height': '140px'})),
        dbc.Checkbox(id='vistoria-no-porte', label='Cana está no porte?', value=False, className='mt-3'),
        html.Small('Marque se a cana atingiu a altura esperada. Se não, uma nova vistoria será agendada em 20 dias.', className='text-muted'),
        html.Div(id='vistoria-feedback', className='mt-2'),
    ]),
    dbc.ModalFooter(dbc.Button('Salvar Vistoria', id='btn-salvar-vistoria', color='primary')),
], id='modal-vistoria', is_open=False)

modal_area = dbc.Modal([
    dbc.ModalHeader(dbc.ModalTitle(id='area-modal-titulo')),
    dbc.ModalBody([
        dbc.Label('Setor/Lote'),
        dbc.Input(id='area-setor-lote', placeholder='S1/L01'),
        dbc.Label('Talhões', className='mt-2'),
        dbc.Input(id='area-talhoes', placeholder='T01, T02'),
        dbc.Label('Data de Plantio', className='mt-2 d-block'),
        dcc.DatePickerSingle(id='area-data-plantio', display_format='DD/MM/YYYY'),
        html.Div(id='area-feedback', className='mt-2'),
    ]),
    dbc.ModalFooter(dbc.Button('Salvar', id='btn-salvar-area', color='primary')),
], id='modal-area', is_open=False)

modal_reagendar = dbc.Modal([
    dbc.ModalHeader(dbc.ModalTitle('Adiantar/Reagendar Vistoria')),
    dbc.ModalBody([
        html.P(id='reagendar-descricao', className='text-muted'),
        dcc.DatePickerSingle(id='reagendar-data', display_format='DD/MM/YYYY'),
        html.Div(id='reagendar-feedback', className='mt-2'),
    ]),
    dbc.ModalFooter(dbc.Button('Salvar Nova Data', id='btn-salvar-reagendamento', color='primary')),
], id='modal-reagendar', is_open=False)

modal_excluir = dbc.Modal([
    dbc.ModalHeader(dbc.ModalTitle('Você tem certeza?')),
    dbc.ModalBody(id='excluir-descricao'),
    dbc.ModalFooter(dbc.Button('Excluir', id='btn-confirmar-exclusao', color='danger')),
], id='modal-excluir', is_open=False)

modal_senha = dbc.Modal([
    dbc.ModalHeader(dbc.ModalTitle('Alterar Senha')),
    dbc.ModalBody([
        html.P('Para sua segurança, por favor, insira sua senha atual e a nova senha.', className='text-muted'),
        dbc.Label('Senha Atual'),
        dbc.Input(id='senha-atual', type='password'),
        dbc.Label('Nova Senha', className='mt-2'),
        dbc.Input(id='senha-nova', type='password'),
        html.Div(id='senha-feedback', className='mt-2'),
    ]),
    dbc.ModalFooter(dbc.Button('Salvar Nova Senha', id='btn-salvar-senha', color='primary')),
], id='modal-senha', is_open=False)

app.layout = html.Div(style={'backgroundColor': colors['background'], 'color': colors['text'], 'minHeight': '100vh', 'fontFamily': 'Arial'}, children=[
    dcc.Location(id='url', refresh=False),
    dcc.Store(id='sessao-login', data=0),
    dcc.Store(id='refresh-store', data=0),
    dcc.Store(id='vistoria-area-id'),
    dcc.Store(id='area-edit-id'),
    dcc.Store(id='reagendar-area-id'),
    dcc.Store(id='excluir-area-id'),
    html.Div(id='navbar-container'),
    dbc.Container([
        html.Div(id='alerta-global'),
        html.Div(id='page-content'),
    ], fluid=True),
    modal_vistoria, modal_area, modal_reagendar, modal_excluir, modal_senha,
])

# =============================================================================
# 4. CALLBACKS
# =============================================================================
@app.callback(
    [Output('navbar-container', 'children'), Output('page-content', 'children')],
    [Input('url', 'pathname'), Input('sessao-login', 'data'), Input('refresh-store', 'data')]
)
def display_page(pathname, _login, _refresh):
    with SessionLocal() as db:
        usuario = operations.obter_usuario(db, uid_sessao())
        if usuario is None:
            return [], layout_login()
        navbar = criar_navbar(usuario)
        if pathname == '/relatorios':
            return navbar, layout_relatorios(db) if usuario.is_admin else layout_acesso_negado()
        if pathname == '/configuracoes':
            return navbar, layout_configuracoes(db, usuario) if usuario.is_admin else layout_acesso_negado()
        return navbar, layout_home(db, usuario)


@app.callback(
    [Output('sessao-login', 'data'), Output('login-feedback', 'children'), Output('url', 'pathname')],
    [Input('btn-login', 'n_clicks'), Input('login-senha', 'n_submit')],
    [State('login-email', 'value'), State('login-senha', 'value'), State('sessao-login', 'data')],
    prevent_initial_call=True
)
def fazer_login(n_clicks, n_submit, email, senha, versao):
    if not n_clicks and not n_submit:
        raise PreventUpdate
    uid, _ = executar(lambda db: _uid_autenticado(db, email, senha))
    if uid is None:
        return dash.no_update, alerta('Email ou senha inválidos.', 'danger'), dash.no_update
    session.clear()
    session['uid'] = uid
    logger.info("Login de %s", email)
    return (versao or 0) + 1, None, '/'


def _uid_autenticado(db, email, senha):
    usuario = operations.autenticar(db, email, senha)
    return usuario.uid if usuario else None


@app.callback(
    [Output('sessao-login', 'data', allow_duplicate=True), Output('url', 'pathname', allow_duplicate=True)],
    Input('btn-sair', 'n_clicks'),
    State('sessao-login', 'data'),
    prevent_initial_call=True
)
def fazer_logout(n_clicks, versao):
    if not n_clicks:
        raise PreventUpdate
    session.clear()
    return (versao or 0) + 1, '/'


@app.callback(
    [Output('modal-senha', 'is_open'), Output('senha-atual', 'value'), Output('senha-nova', 'value'), Output('senha-feedback', 'children')],
    Input('btn-alterar-senha', 'n_clicks'),
    prevent_initial_call=True
)
def abrir_modal_senha(n_clicks):
    if not n_clicks:
        raise PreventUpdate
    return True, '', '', None


@app.callback(
    [Output('modal-senha', 'is_open', allow_duplicate=True), Output('senha-feedback', 'children', allow_duplicate=True),
     Output('alerta-global', 'children', allow_duplicate=True)],
    Input('btn-salvar-senha', 'n_clicks'),
    [State('senha-atual', 'value'), State('senha-nova', 'value')],
    prevent_initial_call=True
)
def salvar_senha(n_clicks, senha_atual, nova_senha):
    if not n_clicks:
        raise PreventUpdate
    _, erro = executar(operations.alterar_senha, uid_sessao(), senha_atual, nova_senha)
    if erro:
        return True, alerta(erro, 'danger'), dash.no_update
    return False, None, alerta('Sua senha foi alterada com sucesso.')

# --- Vistoria ---
@app.callback(
    [Output('modal-vistoria', 'is_open'), Output('vistoria-area-id', 'data'), Output('vistoria-descricao', 'children'),
     Output('vistoria-altura', 'value'), Output('vistoria-observacoes', 'value'), Output('vistoria-no-porte', 'value'),
     Output('vistoria-feedback', 'children')],
    Input({'type': 'btn-vistoriar', 'index': ALL}, 'n_clicks'),
    prevent_initial_call=True
)
def abrir_modal_vistoria(cliques):
    if not clique_valido():
        raise PreventUpdate
    area_id = ctx.triggered_id['index']
    area, erro = executar(lambda db: operations.obter_area(db, area_id).to_dict())
    if erro:
        return False, None, '', None, '', False, None
    descricao = f"Área: {area['sectorLote']} - {area['plots']}. Data: {date.today():%d/%m/%Y}"
    return True, area_id, descricao, None, '', False, None


@app.callback(
    [Output('vistoria-observacoes', 'value', allow_duplicate=True), Output('vistoria-feedback', 'children', allow_duplicate=True)],
    Input('btn-sugerir', 'n_clicks'),
    [State('vistoria-altura', 'value'), State('vistoria-area-id', 'data'), State('vistoria-observacoes', 'value')],
    prevent_initial_call=True
)
def sugerir_observacoes(n_clicks, altura, area_id, observacoes):
    if not n_clicks or area_id is None:
        raise PreventUpdate
    if not altura or float(altura) <= 0:
        return dash.no_update, alerta('Informe a altura para obter sugestões.', 'warning')
    area, erro = executar(_area_para_sugestao, uid_sessao(), area_id)
    if erro:
        return dash.no_update, alerta(erro, 'danger')
    lista = sugestoes.sugerir_observacoes(float(altura), area['sectorLote'], area['plots'])
    texto = "\n".join(lista)
    return (f"{observacoes}\n{texto}" if observacoes else texto), None


def _area_para_sugestao(db, uid, area_id):
    operations.exigir_usuario(db, uid)
    return operations.obter_area(db, area_id).to_dict()


@app.callback(
    [Output('modal-vistoria', 'is_open', allow_duplicate=True), Output('vistoria-feedback', 'children', allow_duplicate=True),
     Output('refresh-store', 'data'), Output('alerta-global', 'children')],
    Input('btn-salvar-vistoria', 'n_clicks'),
    [State('vistoria-area-id', 'data'), State('vistoria-altura', 'value'),
     State('vistoria-observacoes', 'value'), State('vistoria-no-porte', 'value'), State('refresh-store', 'data')],
    prevent_initial_call=True
)
def salvar_vistoria(n_clicks, area_id, altura, observacoes, no_porte, refresh):
    if not n_clicks or area_id is None:
        raise PreventUpdate
    _, erro = executar(operations.registrar_vistoria, uid_sessao(), area_id, altura, observacoes or '', bool(no_porte))
    if erro:
        return True, alerta(erro, 'danger'), dash.no_update, dash.no_update
    return False, None, (refresh or 0) + 1, alerta('Vistoria adicionada com sucesso.')

# --- Cadastro e edição de áreas ---
@app.callback(
    [Output('modal-area', 'is_open'), Output('area-edit-id', 'data'), Output('area-modal-titulo', 'children'),
     Output('area-setor-lote', 'value'), Output('area-talhoes', 'value'), Output('area-data-plantio', 'date'),
     Output('area-feedback', 'children')],
    [Input('btn-nova-area', 'n_clicks'), Input({'type': 'btn-editar', 'index': ALL}, 'n_clicks')],
    prevent_initial_call=True
)
def abrir_modal_area(n_nova, cliques_editar):
    if not clique_valido():
        raise PreventUpdate
    if ctx.triggered_id == 'btn-nova-area':
        return True, None, 'Adicionar Nova Área', '', '', None, None
    area_id = ctx.triggered_id['index']
    area, erro = executar(lambda db: operations.obter_area(db, area_id).to_dict())
    if erro:
        raise PreventUpdate
    return True, area_id, 'Editar Área', area['sectorLote'], area['plots'], area['plantingDate'], None


@app.callback(
    [Output('modal-area', 'is_open', allow_duplicate=True), Output('area-feedback', 'children', allow_duplicate=True),
     Output('refresh-store', 'data', allow_duplicate=True), Output('alerta-global', 'children', allow_duplicate=True)],
    Input('btn-salvar-area', 'n_clicks'),
    [State('area-edit-id', 'data'), State('area-setor-lote', 'value'),
     State('area-talhoes', 'value'), State('area-data-plantio', 'date'), State('refresh-store', 'data')],
    prevent_initial_call=True
)
def salvar_area(n_clicks, area_id, setor_lote, talhoes, data_plantio, refresh):
    if not n_clicks:
        raise PreventUpdate
    data_plantio = parse_data(data_plantio)
    if area_id is None:
        _, erro = executar(operations.criar_area, uid_sessao(), setor_lote, talhoes, data_plantio)
        mensagem = 'Área adicionada com sucesso.'
    else:
        alteracoes = {'setor_lote': setor_lote, 'talhoes': talhoes}
        if data_plantio:
            alteracoes['data_plantio'] = data_plantio
        _, erro = executar(operations.atualizar_area, uid_sessao(), area_id, **alteracoes)
        mensagem = 'Área atualizada com sucesso.'
    if erro:
        return True, alerta(erro, 'danger'), dash.no_update, dash.no_update
    return False, None, (refresh or 0) + 1, alerta(mensagem)

# --- Reagendamento ---
@app.callback(
    [Output('modal-reagendar', 'is_open'), Output('reagendar-area-id', 'data'), Output('reagendar-descricao', 'children'),
     Output('reagendar-data', 'date'), Output('reagendar-feedback', 'children')],
    Input({'type': 'btn-reagendar', 'index': ALL}, 'n_clicks'),
    prevent_initial_call=True
)
def abrir_modal_reagendar(cliques):
    if not clique_valido():
        raise PreventUpdate
    area_id = ctx.triggered_id['index']
    area, erro = executar(lambda db: operations.obter_area(db, area_id).to_dict())
    if erro:
        raise PreventUpdate
    proxima = parse_data(area['nextInspectionDate'])
    descricao = f"Selecione a nova data para a vistoria da área {area['sectorLote']}. Data atual: {formatar_data(proxima)}"
    return True, area_id, descricao, area['nextInspectionDate'], None


@app.callback(
    [Output('modal-reagendar', 'is_open', allow_duplicate=True), Output('reagendar-feedback', 'children', allow_duplicate=True),
     Output('refresh-store', 'data', allow_duplicate=True), Output('alerta-global', 'children', allow_duplicate=True)],
    Input('btn-salvar-reagendamento', 'n_clicks'),
    [State('reagendar-area-id', 'data'), State('reagendar-data', 'date'), State('refresh-store', 'data')],
    prevent_initial_call=True
)
def salvar_reagendamento(n_clicks, area_id, nova_data, refresh):
    if not n_clicks or area_id is None:
        raise PreventUpdate
    _, erro = executar(operations.reagendar_vistoria, uid_sessao(), area_id, parse_data(nova_data))
    if erro:
        return True, alerta(erro, 'danger'), dash.no_update, dash.no_update
    return False, None, (refresh or 0) + 1, alerta('Vistoria reagendada com sucesso.')

# --- Exclusão ---
@app.callback(
    [Output('modal-excluir', 'is_open'), Output('excluir-area-id', 'data'), Output('excluir-descricao', 'children')],
    Input({'type': 'btn-excluir', 'index': ALL}, 'n_clicks'),
    prevent_initial_call=True
)
def abrir_modal_excluir(cliques):
    if not clique_valido():
        raise PreventUpdate
    area_id = ctx.triggered_id['index']
    area, erro = executar(lambda db: operations.obter_area(db, area_id).to_dict())
    if erro:
        raise PreventUpdate
    descricao = [
        'Esta ação não pode ser desfeita. Isso excluirá permanentemente a área ',
        html.Strong(f"{area['sectorLote']} - {area['plots']}"),
        ' e todos os seus dados de vistorias.',
    ]
    return True, area_id, descricao


@app.callback(
    [Output('modal-excluir', 'is_open', allow_duplicate=True), Output('refresh-store', 'data', allow_duplicate=True),
     Output('alerta-global', 'children', allow_duplicate=True)],
    Input('btn-confirmar-exclusao', 'n_clicks'),
    [State('excluir-area-id', 'data'), State('refresh-store', 'data')],
    prevent_initial_call=True
)
def confirmar_exclusao(n_clicks, area_id, refresh):
    if not n_clicks or area_id is None:
        raise PreventUpdate
    _, erro = executar(operations.excluir_area, uid_sessao(), area_id)
    if erro:
        return False, dash.no_update, alerta(erro, 'danger')
    return False, (refresh or 0) + 1, alerta('Área excluída com sucesso.')

# --- Relatórios ---
def montar_relatorio(area_id, status, data_inicio, data_fim):
    """Dados da tabela, colunas e gráfico de status para os filtros selecionados."""
    df = reports.filtrar_relatorio(reports.carregar_areas(engine), area_id, status, parse_data(data_inicio), parse_data(data_fim))
    resumo = reports.resumo_por_status(df).reset_index()
    resumo.columns = ['status', 'quantidade']
    fig = px.bar(resumo, x='status', y='quantidade', color='status', text_auto=True,
                 color_discrete_map={agendamento.STATUS_AGENDADA: '#375a7f', agendamento.STATUS_PENDENTE: '#f39c12', agendamento.STATUS_CONCLUIDA: '#00bc8c'})
    fig.update_layout(title='Áreas por Status', showlegend=False, plot_bgcolor=colors['card_background'], paper_bgcolor=colors['background'],
                      font_color=colors['text'], xaxis=dict(gridcolor=colors['grid']), yaxis=dict(gridcolor=colors['grid']),
                      margin=dict(l=40, r=20, t=40, b=30))
    tabela = reports.formatar_tabela(df)
    return tabela.to_dict('records'), [{'name': c, 'id': c} for c in tabela.columns], fig


def figura_vazia(titulo='Dados não disponíveis'):
    return go.Figure().update_layout(title=titulo, paper_bgcolor=colors['background'], plot_bgcolor=colors['background'], font_color=colors['text'])


@app.callback(
    [Output('tabela-relatorio', 'data'), Output('tabela-relatorio', 'columns'), Output('grafico-status', 'figure'), Output('relatorio-vazio', 'children')],
    [Input('filtro-area', 'value'), Input('filtro-status', 'value'), Input('filtro-datas', 'start_date'), Input('filtro-datas', 'end_date')]
)
def update_relatorio(area_id, status, data_inicio, data_fim):
    _, erro = executar(lambda db: operations.exigir_admin(db, uid_sessao()).uid)
    if erro:
        return [], [], figura_vazia(), alerta(erro, 'danger')
    try:
        dados, colunas, fig = montar_relatorio(area_id, status, data_inicio, data_fim)
    except Exception as e:
        logger.exception("Erro ao gerar relatório")
        return [], [], figura_vazia(), alerta(f"Erro ao gerar relatório: {e}", 'danger')
    aviso = None if dados else dbc.Alert('Nenhum resultado encontrado. Ajuste os filtros para encontrar os dados desejados.', color='info')
    return dados, colunas, fig, aviso

# --- Configurações ---
@app.callback(
    [Output('refresh-store', 'data', allow_duplicate=True), Output('alerta-global', 'children', allow_duplicate=True)],
    [Input('btn-add-email', 'n_clicks'), Input({'type': 'btn-remover-email', 'index': ALL}, 'n_clicks')],
    [State('novo-email', 'value'), State('refresh-store', 'data')],
    prevent_initial_call=True
)
def gerenciar_destinatarios(n_add, cliques_remover, email, refresh):
    if not clique_valido():
        raise PreventUpdate
    if ctx.triggered_id == 'btn-add-email':
        _, erro = executar(operations.adicionar_destinatario, uid_sessao(), email)
        mensagem = 'Email adicionado à lista de notificações.'
    else:
        _, erro = executar(operations.remover_destinatario, uid_sessao(), ctx.triggered_id['index'])
        mensagem = 'Email removido da lista de notificações.'
    if erro:
        return dash.no_update, alerta(erro, 'danger')
    return (refresh or 0) + 1, alerta(mensagem)


@app.callback(
    [Output('alerta-global', 'children', allow_duplicate=True), Output('novo-usuario-email', 'value'), Output('novo-usuario-senha', 'value')],
    Input('btn-criar-usuario', 'n_clicks'),
    [State('novo-usuario-email', 'value'), State('novo-usuario-senha', 'value'), State('novo-usuario-perfil', 'value')],
    prevent_initial_call=True
)
def criar_usuario(n_clicks, email, senha, perfil):
    if not n_clicks:
        raise PreventUpdate
    usuario, erro = executar(lambda db: operations.criar_usuario(db, uid_sessao(), email, senha, perfil=perfil).email)
    if erro:
        return alerta(erro, 'danger'), dash.no_update, dash.no_update
    return alerta(f"Usuário {usuario} criado com sucesso."), '', ''

# =============================================================================
# 5. EXECUÇÃO DO SERVIDOR
# =============================================================================
if __name__ == '__main__':
    config.configurar_logging()
    init_db()
    app.run(debug=True)
