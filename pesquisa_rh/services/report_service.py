import io
import logging
import re
import unicodedata
from datetime import datetime
from typing import List, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from pydantic import BaseModel

from pesquisa_rh.errors import ErrorMessages, NothingToExport
from pesquisa_rh.models import LIKERT_MAX, LIKERT_MIN, TODOS, Formulario, Funcionario, Pergunta, Resposta
from pesquisa_rh.services.aggregation import (
    answers_by_employee, average_per_question, classify_risk, distribution,
    employee_averages, is_unrestricted, overall_average, per_form_average, total_sum
)
from pesquisa_rh.utils import format_date_br, likert_label

logger = logging.getLogger(__name__)

REPORT_TITLE = 'Relatório de Resultados'
SECTION_SUMMARY = 'RESUMO'
SECTION_FILTERS = 'FILTROS APLICADOS'
SECTION_QUESTIONS = 'RESULTADOS POR PERGUNTA'
SECTION_FORMS = 'RESULTADOS POR FORMULÁRIO'
SECTION_EMPLOYEES = 'RESPOSTAS POR FUNCIONÁRIO'

# (lower bound inclusive, label, color)
STATUS_BANDS = [
    (4.5, 'Excelente', 'verde'),
    (3.5, 'Bom', 'amarelo'),
    (2.5, 'Regular', 'vermelho'),
    (0, 'Ruim', 'vermelho'),
]


class ReportContext(BaseModel):
    """
    Everything a results report needs. `formulario` None means the
    "all forms" view; `respostas` are already filtered.
    """
    formulario: Optional[Formulario] = None
    formularios: List[Formulario] = []
    perguntas: List[Pergunta] = []
    funcionarios: List[Funcionario] = []
    respostas: List[Resposta] = []
    funcionario_filtro: Optional[str] = TODOS
    setor_filtro: Optional[str] = TODOS
    gerado_em: datetime

    @property
    def todos_formularios(self):
        return self.formulario is None

    @property
    def funcionarios_by_id(self):
        return {f.id: f for f in self.funcionarios}


def _band(media):
    for lower, label, color in STATUS_BANDS:
        if media >= lower:
            return label, color
    return STATUS_BANDS[-1][1], STATUS_BANDS[-1][2]


def status_label(media):
    return _band(media)[0]


def status_color(media):
    return _band(media)[1]


def slugify(value):
    value = unicodedata.normalize('NFKD', value or '').encode('ascii', 'ignore').decode('ascii')
    value = re.sub(r'[^a-zA-Z0-9]+', '_', value).strip('_').lower()
    return value or 'relatorio'


def report_filename(context):
    escopo = 'todos_formularios' if context.todos_formularios else slugify(context.formulario.nome)
    return f"relatorio_{escopo}_{context.gerado_em.strftime('%d-%m-%Y')}.xlsx"


def ensure_exportable(context):
    if context.todos_formularios:
        if not any(f.ativo for f in context.formularios) or not context.perguntas:
            raise NothingToExport(ErrorMessages.NADA_PARA_EXPORTAR)
        return
    if not context.formulario.ativo or not context.perguntas:
        raise NothingToExport(ErrorMessages.NADA_PARA_EXPORTAR)


def _filter_labels(context):
    funcionario = 'Todos'
    if not is_unrestricted(context.funcionario_filtro):
        found = context.funcionarios_by_id.get(context.funcionario_filtro)
        funcionario = found.nome if found else context.funcionario_filtro
    setor = 'Todos' if is_unrestricted(context.setor_filtro) else context.setor_filtro
    return funcionario, setor


def build_report_rows(context):
    """
    Flattens a results context into spreadsheet rows, in fixed order:
    title, summary, filters, per-question (or per-form) block, per-employee block.
    """
    respostas = context.respostas
    media_geral = overall_average(respostas)
    funcionarios_by_id = context.funcionarios_by_id
    respondentes = {r.funcionario_id for r in respostas}

    rows = [
        [REPORT_TITLE],
        ['Gerado em', format_date_br(context.gerado_em, with_time=True)],
        [],
        [SECTION_SUMMARY],
        ['Formulário', 'Todos os formulários' if context.todos_formularios else context.formulario.nome],
        ['Total de respostas', len(respostas)],
        ['Funcionários que responderam', len(respondentes)],
        ['Média geral', media_geral],
        ['Status', status_label(media_geral)],
        ['Nível de risco', classify_risk(total_sum(respostas))['nivel']],
        [],
    ]

    funcionario_label, setor_label = _filter_labels(context)
    rows += [
        [SECTION_FILTERS],
        ['Funcionário', funcionario_label],
        ['Setor', setor_label],
        [],
    ]

    if context.todos_formularios:
        rows.append([SECTION_FORMS])
        rows.append(['Formulário', 'Média', 'Status', 'Respostas'])
        for item in per_form_average(respostas, context.formularios):
            rows.append([item['nome'], item['media'], status_label(item['media']), item['total']])
    else:
        rows.append([SECTION_QUESTIONS])
        rows.append(['Ordem', 'Pergunta', 'Média', 'Status'] + [f"{v} - {likert_label(v)}" for v in range(LIKERT_MIN, LIKERT_MAX + 1)])
        for item in average_per_question(respostas, context.perguntas):
            rows.append(
                [item['ordem'], item['texto'], item['media'], status_label(item['media'])]
                + distribution(respostas, item['pergunta_id'])
            )
    rows.append([])

    rows.append([SECTION_EMPLOYEES])
    medias = employee_averages(respostas)
    respondentes_ordenados = sorted(
        (funcionarios_by_id[fid] for fid in respondentes if fid in funcionarios_by_id),
        key=lambda f: f.nome.lower()
    )
    if context.todos_formularios:
        contagem = {}
        for resposta in respostas:
            contagem[resposta.funcionario_id] = contagem.get(resposta.funcionario_id, 0) + 1
        rows.append(['Funcionário', 'Setor', 'Respostas', 'Média'])
        for funcionario in respondentes_ordenados:
            rows.append([funcionario.nome, funcionario.setor, contagem[funcionario.id], medias[funcionario.id]])
    else:
        answers = answers_by_employee(respostas)
        rows.append(['Funcionário', 'Setor'] + [f"P{p.ordem}" for p in context.perguntas] + ['Média'])
        for funcionario in respondentes_ordenados:
            valores = answers.get(funcionario.id, {})
            rows.append(
                [funcionario.nome, funcionario.setor]
                + [valores.get(p.id, '') for p in context.perguntas]
                + [medias[funcionario.id]]
            )

    return rows


def serialize_to_spreadsheet(rows, filename):
    """Writes the rows to a one-sheet xlsx workbook held in memory."""
    wb = Workbook()
    ws = wb.active
    ws.title = 'Relatório'
    wb.properties.title = filename

    for row in rows:
        ws.append(row)
        if len(row) == 1 and isinstance(row[0], str):
            ws.cell(row=ws.max_row, column=1).font = Font(bold=True)

    for row in ws.iter_rows():
        for cell in row:
            if isinstance(cell.value, float):
                cell.number_format = '0.00'

    ws.column_dimensions['A'].width = 32
    ws.column_dimensions['B'].width = 48

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output


def export_report(context):
    """Returns (filename, xlsx stream). Raises NothingToExport when there is no data."""
    ensure_exportable(context)
    filename = report_filename(context)
    rows = build_report_rows(context)
    logger.info(f"Exporting report {filename} ({len(rows)} rows)")
    return filename, serialize_to_spreadsheet(rows, filename)


def load_report_rows(stream):
    """Reads an exported report back as lists of cell values (blank rows are empty lists)."""
    wb = load_workbook(stream, data_only=True)
    ws = wb.active
    rows = []
    for row in ws.iter_rows(values_only=True):
        values = list(row)
        while values and values[-1] is None:
            values.pop()
        rows.append(values)
    wb.close()
    return rows


def read_section(rows, title):
    """Data rows (after the header row) of a section, up to the next blank row."""
    try:
        start = next(i for i, row in enumerate(rows) if row[:1] == [title])
    except StopIteration:
        return []
    section = []
    for row in rows[start + 2:]:
        if not row:
            break
        section.append(row)
    return section
