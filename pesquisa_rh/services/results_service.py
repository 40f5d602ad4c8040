import logging

from pesquisa_rh.errors import ErrorMessages, NotFound
from pesquisa_rh.models import TODOS
from pesquisa_rh.services.aggregation import (
    average_per_question, classify_risk, distribution, employee_averages,
    employee_response_status, filter_employee_status, filter_responses,
    is_unrestricted, join_responses, overall_average, per_form_average,
    response_stats, search_responses, total_sum, unique_sectors
)
from pesquisa_rh.services.formulario_service import FormularioService
from pesquisa_rh.services.funcionario_service import FuncionarioService
from pesquisa_rh.services.loader import fetch_all
from pesquisa_rh.services.pergunta_service import PerguntaService
from pesquisa_rh.services.report_service import ReportContext, status_color, status_label
from pesquisa_rh.services.resposta_service import RespostaService
from pesquisa_rh.utils import get_now_br

logger = logging.getLogger(__name__)


def _load_company_data(client, empresa_id):
    base = fetch_all({
        'formularios': lambda: FormularioService(client).get_by_parent_id(empresa_id),
        'funcionarios': lambda: FuncionarioService(client).get_by_parent_id(empresa_id),
    })
    return base['formularios'], [f for f in base['funcionarios'] if f.ativo]


def _load_form_detail(client, formulario_ids):
    """Questions and responses of every form, fetched concurrently."""
    loaders = {}
    for formulario_id in formulario_ids:
        loaders[('perguntas', formulario_id)] = (lambda fid=formulario_id: PerguntaService(client).get_by_parent_id(fid))
        loaders[('respostas', formulario_id)] = (lambda fid=formulario_id: RespostaService(client).get_by_parent_id(fid))
    results = fetch_all(loaders)

    perguntas, respostas = [], []
    for formulario_id in formulario_ids:
        perguntas += results[('perguntas', formulario_id)]
        respostas += results[('respostas', formulario_id)]
    return perguntas, respostas


def load_results_context(client, empresa_id, formulario_id=TODOS, funcionario_filtro=TODOS,
                         setor_filtro=TODOS, offset_hours=-3):
    """
    Fetches everything the results page needs and applies the filters.
    Company data first, then (once the form ids are known) questions and
    responses.
    """
    formularios, funcionarios = _load_company_data(client, empresa_id)

    formulario = None
    if not is_unrestricted(formulario_id):
        formulario = next((f for f in formularios if f.id == formulario_id), None)
        if formulario is None:
            raise NotFound(ErrorMessages.FORMULARIO_NOT_FOUND)
        selecionados = [formulario]
    else:
        selecionados = [f for f in formularios if f.ativo]

    perguntas, respostas = _load_form_detail(client, [f.id for f in selecionados])
    completas = join_responses(respostas, funcionarios, perguntas, formulario=formulario, empresa_id=empresa_id)
    filtradas = filter_responses(
        completas, funcionario_filtro, setor_filtro, {f.id: f for f in funcionarios}
    )
    logger.info(f"Results for empresa {empresa_id}: {len(respostas)} fetched, {len(completas)} valid, {len(filtradas)} after filters")

    return ReportContext(
        formulario=formulario,
        formularios=selecionados if formulario is None else formularios,
        perguntas=perguntas,
        funcionarios=funcionarios,
        respostas=filtradas,
        funcionario_filtro=funcionario_filtro,
        setor_filtro=setor_filtro,
        gerado_em=get_now_br(offset_hours),
    )


def summarize_results(context):
    respostas = context.respostas
    media_geral = overall_average(respostas)
    funcionarios_by_id = context.funcionarios_by_id
    summary = {
        'formulario': context.formulario.model_dump(mode='json') if context.formulario else None,
        'total_respostas': len(respostas),
        'funcionarios_responderam': len({r.funcionario_id for r in respostas}),
        'media_geral': round(media_geral, 2),
        'status': status_label(media_geral),
        'cor': status_color(media_geral),
        'risco': classify_risk(total_sum(respostas)),
        'setores': unique_sectors(context.funcionarios),
        'funcionarios': [
            {'id': f.id, 'nome': f.nome, 'setor': f.setor} for f in context.funcionarios
        ],
        'filtros': {
            'funcionario': context.funcionario_filtro or TODOS,
            'setor': context.setor_filtro or TODOS,
        },
        'medias_funcionarios': [
            {
                'funcionario_id': fid,
                'nome': funcionarios_by_id[fid].nome if fid in funcionarios_by_id else None,
                'media': round(media, 2),
            }
            for fid, media in employee_averages(respostas).items()
        ],
    }

    if context.todos_formularios:
        summary['formularios'] = [
            dict(item, media=round(item['media'], 2), status=status_label(item['media']))
            for item in per_form_average(respostas, context.formularios)
        ]
    else:
        summary['perguntas'] = [
            dict(
                item,
                media=round(item['media'], 2),
                status=status_label(item['media']),
                cor=status_color(item['media']),
                distribuicao=distribution(respostas, item['pergunta_id']),
            )
            for item in average_per_question(respostas, context.perguntas)
        ]
    return summary


def load_response_control(client, empresa_id, formulario_id=TODOS, status=TODOS, setor=TODOS, busca=''):
    """Who answered the selected form, with the sector/status/search filters applied."""
    formularios, funcionarios = _load_company_data(client, empresa_id)
    result = {
        'formularios': [f.model_dump(mode='json') for f in formularios],
        'setores': unique_sectors(funcionarios),
        'funcionarios': [],
        'respostas': [],
        'stats': response_stats([], []),
    }
    if is_unrestricted(formulario_id) or not funcionarios:
        return result

    formulario = next((f for f in formularios if f.id == formulario_id), None)
    if formulario is None:
        raise NotFound(ErrorMessages.FORMULARIO_NOT_FOUND)

    perguntas, respostas = _load_form_detail(client, [formulario.id])
    completas = join_responses(respostas, funcionarios, perguntas, formulario=formulario)
    status_rows = filter_employee_status(
        employee_response_status(funcionarios, respostas), status, setor, busca
    )
    respostas_filtradas = search_responses(completas, busca, setor)

    result['funcionarios'] = [
        dict(row, data_resposta=row['data_resposta'].isoformat() if row['data_resposta'] else None)
        for row in status_rows
    ]
    result['respostas'] = [
        {
            'id': r.id,
            'funcionario': r.funcionario.nome,
            'setor': r.funcionario.setor,
            'pergunta': r.pergunta.texto,
            'ordem': r.pergunta.ordem,
            'valor': r.valor,
            'created_at': r.created_at.isoformat() if r.created_at else None,
        }
        for r in respostas_filtradas
    ]
    result['stats'] = response_stats(status_rows, respostas_filtradas)
    return result
