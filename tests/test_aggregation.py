import pytest

from pesquisa_rh.models import Formulario, Funcionario, Pergunta, Resposta
from pesquisa_rh.services.aggregation import (
    average_per_question, classify_risk, distribution, employee_averages,
    employee_response_status, filter_employee_status, filter_responses,
    join_responses, overall_average, per_form_average, response_stats,
    search_responses, total_sum, unique_sectors
)


def make_resposta(id, funcionario_id, pergunta_id, valor, formulario_id='f1'):
    return Resposta(id=id, formulario_id=formulario_id, funcionario_id=funcionario_id,
                    pergunta_id=pergunta_id, valor=valor)


@pytest.fixture
def funcionarios():
    return [
        Funcionario(id='e1', empresa_id='emp', nome='Ana', setor='TI', email='ana@x.com'),
        Funcionario(id='e2', empresa_id='emp', nome='Bruno', setor='RH', email='bruno@x.com'),
    ]


@pytest.fixture
def perguntas():
    return [
        Pergunta(id='q1', formulario_id='f1', texto='Pergunta 1', ordem=1),
        Pergunta(id='q2', formulario_id='f1', texto='Pergunta 2', ordem=2),
    ]


@pytest.fixture
def respostas():
    return [
        make_resposta('r1', 'e1', 'q1', 4),
        make_resposta('r2', 'e1', 'q2', 2),
        make_resposta('r3', 'e2', 'q1', 5),
    ]


class TestAverages:
    def test_scenario_per_question(self, respostas, perguntas):
        result = average_per_question(respostas, perguntas)
        assert [r['pergunta_id'] for r in result] == ['q1', 'q2']
        assert result[0]['media'] == pytest.approx(4.5)
        assert result[1]['media'] == pytest.approx(2.0)
        assert [r['total'] for r in result] == [2, 1]

    def test_one_entry_per_question_within_scale(self, respostas, perguntas):
        extra = perguntas + [Pergunta(id='q3', formulario_id='f1', texto='Sem respostas', ordem=3)]
        result = average_per_question(respostas, extra)
        assert len(result) == 3
        assert all(0 <= r['media'] <= 5 for r in result)

    def test_unanswered_question_averages_zero(self, perguntas):
        result = average_per_question([], perguntas)
        assert [r['media'] for r in result] == [0, 0]

    def test_overall_average(self, respostas):
        assert overall_average(respostas) == pytest.approx(11 / 3)

    def test_overall_average_empty_is_zero(self):
        assert overall_average([]) == 0

    def test_overall_average_of_three_and_five(self):
        assert overall_average([{'valor': 3}, {'valor': 5}]) == 4

    def test_out_of_scale_values_are_ignored(self, respostas, perguntas):
        respostas = respostas + [
            make_resposta('r4', 'e2', 'q2', 9),
            make_resposta('r5', 'e2', 'q2', 0),
        ]
        result = average_per_question(respostas, perguntas)
        assert all(0 <= r['media'] <= 5 for r in result)
        assert result[1]['media'] == pytest.approx(2.0)
        assert result[1]['total'] == 1
        assert overall_average(respostas) == pytest.approx(11 / 3)
        assert employee_averages(respostas)['e2'] == pytest.approx(5.0)
        assert total_sum(respostas) == 11

    def test_only_out_of_scale_values(self, perguntas):
        respostas = [make_resposta('r1', 'e1', 'q1', 9)]
        assert average_per_question(respostas, perguntas)[0]['media'] == 0
        assert overall_average(respostas) == 0
        assert per_form_average(respostas, [Formulario(id='f1', empresa_id='emp', nome='X')]) == []

    def test_employee_averages(self, respostas):
        assert employee_averages(respostas) == {'e1': pytest.approx(3.0), 'e2': pytest.approx(5.0)}


class TestDistribution:
    def test_counts_per_value(self, respostas):
        assert distribution(respostas, 'q1') == [0, 0, 0, 1, 1]

    def test_sums_to_valid_responses(self, respostas):
        respostas = respostas + [
            make_resposta('r4', 'e2', 'q2', 2),
            make_resposta('r5', 'e2', 'q2', 9),
        ]
        counts = distribution(respostas, 'q2')
        assert sum(counts) == 2
        assert counts[1] == 2

    def test_question_without_responses(self, respostas):
        assert distribution(respostas, 'missing') == [0, 0, 0, 0, 0]


class TestFilters:
    def test_todos_is_identity(self, respostas, funcionarios):
        by_id = {f.id: f for f in funcionarios}
        assert filter_responses(respostas, 'todos', 'todos', by_id) == respostas

    def test_filter_is_idempotent(self, respostas, funcionarios):
        by_id = {f.id: f for f in funcionarios}
        once = filter_responses(respostas, 'todos', 'TI', by_id)
        assert filter_responses(once, 'todos', 'TI', by_id) == once

    def test_sector_filter(self, respostas, funcionarios):
        by_id = {f.id: f for f in funcionarios}
        filtered = filter_responses(respostas, 'todos', 'TI', by_id)
        assert {r.funcionario_id for r in filtered} == {'e1'}
        assert overall_average(filtered) == pytest.approx(3.0)

    def test_employee_filter(self, respostas):
        filtered = filter_responses(respostas, 'e2', 'todos')
        assert [r.id for r in filtered] == ['r3']

    def test_sector_filter_drops_unknown_employees(self, respostas):
        assert filter_responses(respostas, 'todos', 'TI', {}) == []


class TestJoin:
    def test_attaches_employee_and_question(self, respostas, funcionarios, perguntas):
        completas = join_responses(respostas, funcionarios, perguntas)
        assert len(completas) == 3
        assert completas[0].funcionario.nome == 'Ana'
        assert completas[0].pergunta.texto == 'Pergunta 1'

    def test_drops_orphans(self, respostas, funcionarios, perguntas):
        respostas = respostas + [
            make_resposta('r4', 'ghost', 'q1', 3),
            make_resposta('r5', 'e1', 'deleted-question', 3),
        ]
        completas = join_responses(respostas, funcionarios, perguntas)
        assert [r.id for r in completas] == ['r1', 'r2', 'r3']

    def test_drops_other_company_employees(self, respostas, perguntas):
        funcionarios = [
            Funcionario(id='e1', empresa_id='emp', nome='Ana', setor='TI'),
            Funcionario(id='e2', empresa_id='outra', nome='Bruno', setor='RH'),
        ]
        formulario = Formulario(id='f1', empresa_id='emp', nome='Form')
        completas = join_responses(respostas, funcionarios, perguntas, formulario=formulario)
        assert {r.funcionario_id for r in completas} == {'e1'}

    def test_drops_out_of_scale_values(self, respostas, funcionarios, perguntas):
        respostas = respostas + [make_resposta('r4', 'e2', 'q2', 9)]
        completas = join_responses(respostas, funcionarios, perguntas)
        assert [r.id for r in completas] == ['r1', 'r2', 'r3']

    def test_joining_twice_keeps_records(self, respostas, funcionarios, perguntas):
        once = join_responses(respostas, funcionarios, perguntas)
        twice = join_responses(once, funcionarios, perguntas)
        assert [r.id for r in twice] == [r.id for r in once]


class TestPerForm:
    def test_forms_without_responses_are_excluded(self, respostas):
        formularios = [
            Formulario(id='f1', empresa_id='emp', nome='Clima'),
            Formulario(id='f2', empresa_id='emp', nome='Vazio'),
        ]
        result = per_form_average(respostas, formularios)
        assert [r['formulario_id'] for r in result] == ['f1']
        assert result[0]['media'] == pytest.approx(11 / 3)
        assert result[0]['total'] == 3


class TestRisk:
    @pytest.mark.parametrize('soma, nivel', [
        (0, 'Trivial'),
        (3, 'Trivial'),
        (4, 'Tolerável'),
        (8, 'Tolerável'),
        (9, 'Moderado'),
        (10, 'Moderado'),
        (12, 'Moderado'),
        (13, 'Alto'),
        (19, 'Alto'),
        (20, 'Extremo'),
        (30, 'Extremo'),
    ])
    def test_tiers(self, soma, nivel):
        assert classify_risk(soma)['nivel'] == nivel

    def test_colors(self):
        assert classify_risk(1)['cor'] == 'verde'
        assert classify_risk(25)['cor'] == 'vermelho'

    def test_total_sum(self, respostas):
        assert total_sum(respostas) == 11


class TestResponseControl:
    def test_status_only_for_active_employees(self, respostas, funcionarios):
        funcionarios = funcionarios + [
            Funcionario(id='e3', empresa_id='emp', nome='Carla', setor='RH', status='inativo'),
        ]
        rows = employee_response_status(funcionarios, respostas)
        assert [r['id'] for r in rows] == ['e1', 'e2']
        assert all(r['status'] == 'respondeu' for r in rows)

    def test_not_answered(self, funcionarios):
        rows = employee_response_status(funcionarios, [make_resposta('r1', 'e1', 'q1', 4)])
        status = {r['id']: r['status'] for r in rows}
        assert status == {'e1': 'respondeu', 'e2': 'nao_respondeu'}

    def test_filter_by_status_sector_and_search(self, funcionarios):
        rows = employee_response_status(funcionarios, [make_resposta('r1', 'e1', 'q1', 4)])
        assert [r['id'] for r in filter_employee_status(rows, status='nao_respondeu')] == ['e2']
        assert [r['id'] for r in filter_employee_status(rows, setor='TI')] == ['e1']
        assert [r['id'] for r in filter_employee_status(rows, busca='BRUNO@')] == ['e2']
        assert filter_employee_status(rows, status='respondeu', setor='RH') == []

    def test_search_responses(self, respostas, funcionarios, perguntas):
        completas = join_responses(respostas, funcionarios, perguntas)
        assert [r.id for r in search_responses(completas, busca='ana')] == ['r1', 'r2']
        assert [r.id for r in search_responses(completas, setor='RH')] == ['r3']

    def test_stats(self, respostas, funcionarios):
        rows = employee_response_status(funcionarios, respostas[:2])
        stats = response_stats(rows, respostas[:2])
        assert stats == {
            'total_respostas': 2,
            'funcionarios_que_responderam': 1,
            'funcionarios_que_nao_responderam': 1,
            'total_funcionarios': 2,
        }

    def test_unique_sectors(self, funcionarios):
        funcionarios = funcionarios + [Funcionario(id='e9', empresa_id='emp', nome='Sem setor', setor=None)]
        assert unique_sectors(funcionarios) == ['RH', 'TI']
