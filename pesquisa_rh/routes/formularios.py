from flask import Blueprint, current_app, request, url_for
from flask_login import current_user

from pesquisa_rh.auth import empresa_required
from pesquisa_rh.errors import ErrorMessages, PermissionDenied, ValidationFailure
from pesquisa_rh.services.form_service import FormService
from pesquisa_rh.services.funcionario_service import FuncionarioService
from pesquisa_rh.utils import api_response

formularios_bp = Blueprint('formularios', __name__, url_prefix='/api/formularios')


def _form_payload():
    data = request.get_json(silent=True) or {}
    perguntas = data.get('perguntas') or []
    if not isinstance(perguntas, list):
        raise ValidationFailure(ErrorMessages.FORMULARIO_PERGUNTAS)
    # Accept plain strings or {"texto": ...} objects
    textos = [p.get('texto', '') if isinstance(p, dict) else str(p) for p in perguntas]
    return data.get('nome'), textos


@formularios_bp.route('', methods=['GET'])
@empresa_required
def list_formularios():
    formularios = FormService.list_forms(current_user.empresa_id)
    return api_response(data=[f.model_dump(mode='json') for f in formularios])


@formularios_bp.route('', methods=['POST'])
@empresa_required
def create_formulario():
    nome, perguntas = _form_payload()
    formulario = FormService.save_form(current_user.empresa_id, nome, perguntas)
    current_app.logger.info(f"Formulario {formulario.id} created by {current_user.email}")
    return api_response(data=formulario.model_dump(mode='json'), status=201)


@formularios_bp.route('/<formulario_id>', methods=['PUT'])
@empresa_required
def update_formulario(formulario_id):
    nome, perguntas = _form_payload()
    formulario = FormService.save_form(current_user.empresa_id, nome, perguntas, formulario_id=formulario_id)
    return api_response(data=formulario.model_dump(mode='json'))


@formularios_bp.route('/<formulario_id>/toggle', methods=['POST'])
@empresa_required
def toggle_formulario(formulario_id):
    formulario = FormService.toggle_status(formulario_id, current_user.empresa_id)
    return api_response(data=formulario.model_dump(mode='json'))


@formularios_bp.route('/<formulario_id>', methods=['DELETE'])
@empresa_required
def delete_formulario(formulario_id):
    FormService.delete_form(formulario_id, current_user.empresa_id)
    current_app.logger.info(f"Formulario {formulario_id} deleted by {current_user.email}")
    return api_response(data={'id': formulario_id})


@formularios_bp.route('/<formulario_id>/links', methods=['POST'])
@empresa_required
def generate_links(formulario_id):
    """
    Signed answering links, one per employee. Body may restrict the
    employees with {"funcionario_ids": [...]}; default is every active one.
    """
    formulario = FormService.get_owned_form(formulario_id, current_user.empresa_id)
    if not formulario.ativo:
        raise ValidationFailure(ErrorMessages.FORMULARIO_INATIVO)

    data = request.get_json(silent=True) or {}
    wanted = data.get('funcionario_ids')
    funcionarios = FuncionarioService().get_ativos(current_user.empresa_id)
    if wanted:
        wanted = set(wanted)
        unknown = wanted - {f.id for f in funcionarios}
        if unknown:
            raise PermissionDenied(ErrorMessages.PERMISSION, details=sorted(unknown))
        funcionarios = [f for f in funcionarios if f.id in wanted]

    links = []
    for funcionario in funcionarios:
        token = FormService.generate_public_token(formulario.id, funcionario.id)
        links.append({
            'funcionario_id': funcionario.id,
            'nome': funcionario.nome,
            'email': funcionario.email,
            'url': url_for('public.answer_form', formulario_id=formulario.id, token=token, _external=True),
        })
    return api_response(data=links)
