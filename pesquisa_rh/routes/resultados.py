from flask import Blueprint, current_app, request, send_file
from flask_login import current_user

from pesquisa_rh.auth import empresa_required
from pesquisa_rh.models import TODOS
from pesquisa_rh.services.report_service import export_report
from pesquisa_rh.services.results_service import load_results_context, summarize_results
from pesquisa_rh.utils import api_response

resultados_bp = Blueprint('resultados', __name__, url_prefix='/api/resultados')

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _selection():
    return (
        request.args.get('formulario_id', TODOS),
        request.args.get('funcionario', TODOS),
        request.args.get('setor', TODOS),
    )


def _load_context(selection):
    formulario_id, funcionario, setor = selection
    return load_results_context(
        current_app.supabase,
        current_user.empresa_id,
        formulario_id=formulario_id,
        funcionario_filtro=funcionario,
        setor_filtro=setor,
        offset_hours=current_app.config['EXPORT_TIMEZONE_OFFSET'],
    )


@resultados_bp.route('', methods=['GET'])
@empresa_required
def resultados():
    guard = current_app.extensions['selection_guards'].for_key(current_user.id)
    summary = guard.load_for_selection(_selection(), lambda s: summarize_results(_load_context(s)))
    if summary is None:
        # A newer selection from the same user superseded this one
        return api_response(success=False, error='Seleção alterada.', status=409, stale=True)
    return api_response(data=summary)


@resultados_bp.route('/export', methods=['GET'])
@empresa_required
def export():
    filename, stream = export_report(_load_context(_selection()))
    current_app.logger.info(f"Report {filename} exported by {current_user.email}")
    return send_file(stream, mimetype=XLSX_MIMETYPE, as_attachment=True, download_name=filename)
