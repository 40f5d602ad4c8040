from flask import Blueprint, current_app, request

from pesquisa_rh.errors import ErrorMessages, PermissionDenied
from pesquisa_rh.services.form_service import FormService
from pesquisa_rh.utils import LIKERT_LABELS, api_response

public_bp = Blueprint('public', __name__, url_prefix='/formulario')

# ==========================================
# PUBLIC ROUTES (employee answering)
# ==========================================


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _funcionario_from_token(formulario_id):
    data = _json_body()
    token = request.args.get('token') or data.get('token')
    auth_header = request.headers.get('Authorization', '')
    if not token and auth_header.startswith('Bearer '):
        token = auth_header.split(' ')[1]
    if not isinstance(token, str):
        token = None

    funcionario_id = FormService.verify_token(token, formulario_id) if token else None
    if not funcionario_id:
        raise PermissionDenied(ErrorMessages.TOKEN_INVALIDO)
    return funcionario_id


@public_bp.route('/<formulario_id>', methods=['GET'])
def answer_form(formulario_id):
    """Form schema for the answering page: questions in order plus the Likert scale."""
    funcionario_id = _funcionario_from_token(formulario_id)
    formulario, perguntas, funcionario = FormService.load_for_answering(formulario_id, funcionario_id)
    return api_response(data={
        'formulario': {'id': formulario.id, 'nome': formulario.nome},
        'funcionario': {'id': funcionario.id, 'nome': funcionario.nome},
        'perguntas': [{'id': p.id, 'texto': p.texto, 'ordem': p.ordem} for p in perguntas],
        'opcoes': [{'valor': valor, 'label': label} for valor, label in LIKERT_LABELS.items()],
    })


@public_bp.route('/<formulario_id>/responder', methods=['POST'])
def submit_form(formulario_id):
    """
    Body: { token: "...", respostas: { pergunta_id: valor } }
    The token may also come as ?token= or Authorization: Bearer.
    """
    funcionario_id = _funcionario_from_token(formulario_id)
    data = _json_body()
    created = FormService.submit_answers(formulario_id, funcionario_id, data.get('respostas'))
    current_app.logger.info(f"Public submission: formulario {formulario_id}, funcionario {funcionario_id}")
    return api_response(data={'respostas': len(created)}, status=201)
