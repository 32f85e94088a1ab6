import agendamento
import models
import populate_data


def test_carga_inicial(db):
    admin = populate_data.criar_usuarios_iniciais(db)
    assert admin.is_admin
    assert populate_data.criar_usuarios_iniciais(db).uid == admin.uid
    assert db.query(models.Usuario).count() == 2

    assert populate_data.criar_areas_exemplo(db, admin) == 3
    status = {a.setor_lote: a.status for a in db.query(models.Area)}
    assert status == {
        "S1/L01": agendamento.STATUS_AGENDADA,
        "S2/L05": agendamento.STATUS_PENDENTE,
        "S1/L02": agendamento.STATUS_CONCLUIDA,
    }

    populate_data.limpar_banco_de_dados(db)
    assert db.query(models.Area).count() == 0
    assert db.query(models.Usuario).count() == 0
