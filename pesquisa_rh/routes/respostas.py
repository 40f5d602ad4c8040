from flask import Blueprint, current_app, request
from flask_login import current_user

from pesquisa_rh.auth import empresa_required
from pesquisa_rh.models import TODOS
from pesquisa_rh.services.results_service import load_response_control
from pesquisa_rh.utils import api_response

respostas_bp = Blueprint('respostas', __name__, url_prefix='/api/respostas')


@respostas_bp.route('', methods=['GET'])
@empresa_required
def response_control():
    """Per-employee answer status of one form, filtered by status, sector and search text."""
    data = load_response_control(
        current_app.supabase,
        current_user.empresa_id,
        formulario_id=request.args.get('formulario_id', TODOS),
        status=request.args.get('status', TODOS),
        setor=request.args.get('setor', TODOS),
        busca=request.args.get('busca', ''),
    )
    return api_response(data=data)
