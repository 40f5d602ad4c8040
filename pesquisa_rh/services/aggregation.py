"""
Results aggregation over already-fetched responses.

Every function here is pure and synchronous. Malformed input (responses
pointing at unknown employees or questions) is filtered out, never raised.
"""
from collections import OrderedDict

from pesquisa_rh.models import (
    LIKERT_MAX, LIKERT_MIN, RESPOSTA_STATUS_NAO_RESPONDEU, RESPOSTA_STATUS_RESPONDEU,
    TODOS, Resposta, RespostaCompleta
)

# (upper bound inclusive, tier, color key). Last tier has no upper bound.
RISK_TIERS = [
    (3, 'Trivial', 'verde'),
    (8, 'Tolerável', 'azul'),
    (12, 'Moderado', 'amarelo'),
    (19, 'Alto', 'laranja'),
    (None, 'Extremo', 'vermelho'),
]


def _get(record, field, default=None):
    if isinstance(record, dict):
        return record.get(field, default)
    return getattr(record, field, default)


def _mean(total, count):
    return total / count if count else 0.0


def is_unrestricted(value):
    return value is None or value == '' or value == TODOS


def in_scale(valor):
    return isinstance(valor, int) and not isinstance(valor, bool) and LIKERT_MIN <= valor <= LIKERT_MAX


def scored(respostas):
    """Responses whose value is on the Likert scale. Everything else is ignored."""
    return [r for r in respostas if in_scale(_get(r, 'valor'))]


# ==========================================
# FILTERS
# ==========================================

def filter_responses(respostas, funcionario_filtro=TODOS, setor_filtro=TODOS, funcionarios_by_id=None):
    """
    Keeps responses whose employee matches the employee filter and whose
    employee's sector matches the sector filter. "todos" (or None) means
    unrestricted; with both unrestricted the input comes back unchanged.
    """
    respostas = list(respostas)
    if is_unrestricted(funcionario_filtro) and is_unrestricted(setor_filtro):
        return respostas

    funcionarios_by_id = funcionarios_by_id or {}
    filtered = []
    for resposta in respostas:
        funcionario_id = _get(resposta, 'funcionario_id')
        if not is_unrestricted(funcionario_filtro) and funcionario_id != funcionario_filtro:
            continue
        if not is_unrestricted(setor_filtro):
            funcionario = funcionarios_by_id.get(funcionario_id)
            if funcionario is None or _get(funcionario, 'setor') != setor_filtro:
                continue
        filtered.append(resposta)
    return filtered


def join_responses(respostas, funcionarios, perguntas, formulario=None, empresa_id=None):
    """
    Attaches employee and question to each response.
    Drops responses whose employee or question is unknown, whose question
    belongs to another form, or whose employee belongs to another company.
    """
    funcionarios_by_id = {f.id: f for f in funcionarios}
    perguntas_by_id = {p.id: p for p in perguntas}
    if formulario is not None and empresa_id is None:
        empresa_id = formulario.empresa_id

    completas = []
    for resposta in respostas:
        funcionario = funcionarios_by_id.get(resposta.funcionario_id)
        pergunta = perguntas_by_id.get(resposta.pergunta_id)
        if funcionario is None or pergunta is None or not in_scale(resposta.valor):
            continue
        if pergunta.formulario_id != resposta.formulario_id:
            continue
        if formulario is not None and resposta.formulario_id != formulario.id:
            continue
        if empresa_id is not None and funcionario.empresa_id != empresa_id:
            continue
        completas.append(RespostaCompleta(
            **resposta.model_dump(include=set(Resposta.model_fields)),
            funcionario=funcionario,
            pergunta=pergunta,
            formulario=formulario
        ))
    return completas


# ==========================================
# AVERAGES & DISTRIBUTION
# ==========================================

def average_per_question(respostas, perguntas):
    """
    One entry per question, in the given order. A question nobody answered
    averages 0.
    """
    totals = {}
    counts = {}
    for resposta in scored(respostas):
        pergunta_id = _get(resposta, 'pergunta_id')
        totals[pergunta_id] = totals.get(pergunta_id, 0) + _get(resposta, 'valor', 0)
        counts[pergunta_id] = counts.get(pergunta_id, 0) + 1

    return [
        {
            'pergunta_id': pergunta.id,
            'texto': pergunta.texto,
            'ordem': pergunta.ordem,
            'media': _mean(totals.get(pergunta.id, 0), counts.get(pergunta.id, 0)),
            'total': counts.get(pergunta.id, 0),
        }
        for pergunta in perguntas
    ]


def overall_average(respostas):
    respostas = scored(respostas)
    return _mean(sum(_get(r, 'valor') for r in respostas), len(respostas))


def distribution(respostas, pergunta_id):
    """Counts per Likert value 1..5. Out-of-range values are ignored."""
    buckets = [0] * (LIKERT_MAX - LIKERT_MIN + 1)
    for resposta in scored(respostas):
        if _get(resposta, 'pergunta_id') == pergunta_id:
            buckets[_get(resposta, 'valor') - LIKERT_MIN] += 1
    return buckets


def per_form_average(respostas, formularios):
    """
    Mean of all responses of each form. Forms without responses are left
    out (unlike average_per_question, which reports 0).
    """
    totals = {}
    counts = {}
    for resposta in scored(respostas):
        formulario_id = _get(resposta, 'formulario_id')
        totals[formulario_id] = totals.get(formulario_id, 0) + _get(resposta, 'valor', 0)
        counts[formulario_id] = counts.get(formulario_id, 0) + 1

    return [
        {
            'formulario_id': formulario.id,
            'nome': formulario.nome,
            'media': _mean(totals[formulario.id], counts[formulario.id]),
            'total': counts[formulario.id],
        }
        for formulario in formularios
        if counts.get(formulario.id)
    ]


def employee_averages(respostas):
    totals = OrderedDict()
    counts = {}
    for resposta in scored(respostas):
        funcionario_id = _get(resposta, 'funcionario_id')
        totals[funcionario_id] = totals.get(funcionario_id, 0) + _get(resposta, 'valor', 0)
        counts[funcionario_id] = counts.get(funcionario_id, 0) + 1
    return {fid: _mean(total, counts[fid]) for fid, total in totals.items()}


def answers_by_employee(respostas):
    """{funcionario_id: {pergunta_id: valor}}"""
    answers = OrderedDict()
    for resposta in scored(respostas):
        answers.setdefault(_get(resposta, 'funcionario_id'), {})[_get(resposta, 'pergunta_id')] = _get(resposta, 'valor')
    return answers


# ==========================================
# RISK
# ==========================================

def total_sum(respostas):
    return sum(_get(r, 'valor') for r in scored(respostas))


def classify_risk(soma):
    # NOTE: raw sum, so tiers are only comparable between forms with the same number of questions
    for upper, nivel, cor in RISK_TIERS:
        if upper is None or soma <= upper:
            return {'nivel': nivel, 'cor': cor}


# ==========================================
# RESPONSE CONTROL
# ==========================================

def employee_response_status(funcionarios, respostas):
    """Whether each active employee answered, with the first answer date."""
    primeira_resposta = {}
    for resposta in respostas:
        funcionario_id = _get(resposta, 'funcionario_id')
        if funcionario_id not in primeira_resposta:
            primeira_resposta[funcionario_id] = resposta

    rows = []
    for funcionario in funcionarios:
        if not funcionario.ativo:
            continue
        primeira = primeira_resposta.get(funcionario.id)
        rows.append({
            'id': funcionario.id,
            'nome': funcionario.nome,
            'email': funcionario.email,
            'cargo': funcionario.cargo,
            'setor': funcionario.setor,
            'status': RESPOSTA_STATUS_RESPONDEU if primeira else RESPOSTA_STATUS_NAO_RESPONDEU,
            'data_resposta': _get(primeira, 'created_at') if primeira else None,
        })
    return rows


def _matches_search(nome, email, busca):
    busca = (busca or '').strip().lower()
    if not busca:
        return True
    return busca in (nome or '').lower() or busca in (email or '').lower()


def filter_employee_status(rows, status=TODOS, setor=TODOS, busca=''):
    return [
        row for row in rows
        if (is_unrestricted(status) or row['status'] == status)
        and (is_unrestricted(setor) or row['setor'] == setor)
        and _matches_search(row['nome'], row['email'], busca)
    ]


def search_responses(respostas_completas, busca='', setor=TODOS):
    return [
        r for r in respostas_completas
        if r.valor > 0
        and (is_unrestricted(setor) or r.funcionario.setor == setor)
        and _matches_search(r.funcionario.nome, r.funcionario.email, busca)
    ]


def unique_sectors(funcionarios):
    return sorted({f.setor for f in funcionarios if f.setor})


def response_stats(status_rows, respostas):
    responderam = sum(1 for row in status_rows if row['status'] == RESPOSTA_STATUS_RESPONDEU)
    return {
        'total_respostas': len(respostas),
        'funcionarios_que_responderam': responderam,
        'funcionarios_que_nao_responderam': len(status_rows) - responderam,
        'total_funcionarios': len(status_rows),
    }
