from unittest.mock import patch

import pytest

from pesquisa_rh.errors import (
    ConnectionFailure, DuplicateSubmission, NotFound, PermissionDenied, ValidationFailure
)
from pesquisa_rh.services.form_service import FormService
from pesquisa_rh.services.pergunta_service import PerguntaService
from pesquisa_rh.services.resposta_service import RespostaService


@pytest.fixture
def db(fake_supabase, app_context):
    return fake_supabase


class TestTokens:
    def test_round_trip(self, db):
        token = FormService.generate_public_token('f1', 'e1')
        assert FormService.verify_token(token, 'f1') == 'e1'

    def test_token_is_bound_to_form(self, db):
        token = FormService.generate_public_token('f1', 'e1')
        assert FormService.verify_token(token, 'f2') is None

    def test_tampered_token(self, db):
        token = FormService.generate_public_token('f1', 'e1')
        assert FormService.verify_token(token[:-2] + 'xx', 'f1') is None

    def test_expired_token(self, db, app_context):
        token = FormService.generate_public_token('f1', 'e1')
        app_context.config['FORM_TOKEN_MAX_AGE'] = -1
        assert FormService.verify_token(token, 'f1') is None


class TestSaveForm:
    def test_create_numbers_questions(self, db):
        formulario = FormService.save_form('emp', ' Clima ', ['Primeira', '  ', 'Segunda'], client=db)
        assert formulario.nome == 'Clima'
        assert formulario.status == 'ativo'
        assert [(p.ordem, p.texto) for p in formulario.perguntas] == [(1, 'Primeira'), (2, 'Segunda')]

    def test_requires_name(self, db):
        with pytest.raises(ValidationFailure):
            FormService.save_form('emp', '  ', ['Pergunta'], client=db)
        assert db.requests == []

    def test_requires_a_question(self, db):
        with pytest.raises(ValidationFailure):
            FormService.save_form('emp', 'Clima', ['', '   '], client=db)
        assert db.requests == []

    def test_edit_replaces_questions(self, db, scenario):
        formulario = FormService.save_form(
            scenario.empresa['id'], 'Clima 2024', ['Nova pergunta'],
            formulario_id=scenario.form['id'], client=db
        )
        assert formulario.id == scenario.form['id']
        assert formulario.nome == 'Clima 2024'
        perguntas = PerguntaService(db).get_by_parent_id(scenario.form['id'])
        assert [(p.ordem, p.texto) for p in perguntas] == [(1, 'Nova pergunta')]

    def test_edit_inserts_before_deleting(self, db, scenario):
        FormService.save_form(scenario.empresa['id'], 'Clima', ['A', 'B', 'C'],
                              formulario_id=scenario.form['id'], client=db)
        perguntas_requests = [mode for table, mode in db.requests if table == 'perguntas']
        assert perguntas_requests[-2:] == ['insert', 'delete']
        perguntas = PerguntaService(db).get_by_parent_id(scenario.form['id'])
        assert [p.texto for p in perguntas] == ['A', 'B', 'C']

    def test_failed_edit_keeps_old_questions(self, db, scenario):
        antes = [p.id for p in PerguntaService(db).get_by_parent_id(scenario.form['id'])]
        with patch.object(PerguntaService, 'create_many', side_effect=ConnectionFailure('offline')):
            with pytest.raises(ConnectionFailure):
                FormService.save_form(scenario.empresa['id'], 'Clima', ['Nova'],
                                      formulario_id=scenario.form['id'], client=db)
        depois = [p.id for p in PerguntaService(db).get_by_parent_id(scenario.form['id'])]
        assert depois == antes
        assert len(depois) == 2

    def test_edit_other_company_form(self, db, scenario):
        with pytest.raises(PermissionDenied):
            FormService.save_form('outra', 'X', ['Y'], formulario_id=scenario.form['id'], client=db)

    def test_edit_unknown_form(self, db):
        with pytest.raises(NotFound):
            FormService.save_form('emp', 'X', ['Y'], formulario_id='nope', client=db)

    def test_toggle(self, db, scenario):
        formulario = FormService.toggle_status(scenario.form['id'], scenario.empresa['id'], client=db)
        assert formulario.status == 'inativo'
        formulario = FormService.toggle_status(scenario.form['id'], scenario.empresa['id'], client=db)
        assert formulario.status == 'ativo'

    def test_list_forms_counts_respondents(self, db, scenario):
        formularios = FormService.list_forms(scenario.empresa['id'], client=db)
        assert len(formularios) == 1
        assert formularios[0].respostas == 2
        assert [p.ordem for p in formularios[0].perguntas] == [1, 2]


class TestSubmitAnswers:
    def answers(self, scenario, q1=3, q2=4):
        return {scenario.q1['id']: q1, scenario.q2['id']: q2}

    def test_stores_one_row_per_question(self, db, scenario):
        funcionario_id = self._new_employee(db, scenario)
        created = FormService.submit_answers(scenario.form['id'], funcionario_id, self.answers(scenario), client=db)
        assert sorted(r.valor for r in created) == [3, 4]
        assert {r.funcionario_id for r in created} == {funcionario_id}

    def _new_employee(self, db, scenario):
        row = db.seed('funcionarios', empresa_id=scenario.empresa['id'], nome='Diego', setor='TI',
                      cpf='39053344705', status='ativo')
        return row['id']

    def test_duplicate_submission(self, db, scenario):
        with pytest.raises(DuplicateSubmission):
            FormService.submit_answers(scenario.form['id'], scenario.e1['id'], self.answers(scenario), client=db)

    def test_missing_answer(self, db, scenario):
        funcionario_id = self._new_employee(db, scenario)
        with pytest.raises(ValidationFailure):
            FormService.submit_answers(scenario.form['id'], funcionario_id, {scenario.q1['id']: 3}, client=db)

    @pytest.mark.parametrize('valor', [0, 6, 'muito', 4.9, 4.0, True, None, '3.5'])
    def test_out_of_scale(self, db, scenario, valor):
        funcionario_id = self._new_employee(db, scenario)
        with pytest.raises(ValidationFailure):
            FormService.submit_answers(scenario.form['id'], funcionario_id, self.answers(scenario, q2=valor), client=db)
        assert RespostaService(db).get_by_funcionario_and_formulario(funcionario_id, scenario.form['id']) == []

    def test_digit_strings_are_accepted(self, db, scenario):
        funcionario_id = self._new_employee(db, scenario)
        created = FormService.submit_answers(scenario.form['id'], funcionario_id,
                                             self.answers(scenario, q1='2', q2=' 5 '), client=db)
        assert sorted(r.valor for r in created) == [2, 5]

    @pytest.mark.parametrize('answers', [[5, 5], 'tudo 5', 42])
    def test_answers_must_be_a_mapping(self, db, scenario, answers):
        funcionario_id = self._new_employee(db, scenario)
        with pytest.raises(ValidationFailure):
            FormService.submit_answers(scenario.form['id'], funcionario_id, answers, client=db)

    def test_inactive_form(self, db, scenario):
        FormService.toggle_status(scenario.form['id'], scenario.empresa['id'], client=db)
        with pytest.raises(ValidationFailure):
            FormService.submit_answers(scenario.form['id'], self._new_employee(db, scenario),
                                       self.answers(scenario), client=db)

    def test_inactive_employee(self, db, scenario):
        with pytest.raises(ValidationFailure):
            FormService.submit_answers(scenario.form['id'], scenario.e3['id'], self.answers(scenario), client=db)

    def test_employee_of_other_company(self, db, scenario):
        outsider = db.seed('funcionarios', empresa_id='outra', nome='Fora', cpf='39053344705', status='ativo')
        with pytest.raises(PermissionDenied):
            FormService.submit_answers(scenario.form['id'], outsider['id'], self.answers(scenario), client=db)
