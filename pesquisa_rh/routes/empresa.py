from flask import Blueprint, current_app, request, session
from flask_login import current_user, login_required

from pesquisa_rh.auth import empresa_required
from pesquisa_rh.errors import ValidationFailure
from pesquisa_rh.models import EmpresaCreate
from pesquisa_rh.services.empresa_service import EmpresaService
from pesquisa_rh.utils import api_response

empresa_bp = Blueprint('empresa', __name__, url_prefix='/api/empresa')


@empresa_bp.route('', methods=['GET'])
@login_required
def get_empresa():
    empresa = EmpresaService().get_by_user_id(current_user.id)
    return api_response(data=empresa.model_dump(mode='json') if empresa else None)


@empresa_bp.route('', methods=['POST'])
@login_required
def create_empresa():
    service = EmpresaService()
    if service.get_empresa_id_by_user_id(current_user.id):
        raise ValidationFailure('Empresa já cadastrada para este usuário.')

    payload = EmpresaCreate(**dict(request.get_json(silent=True) or {}, user_id=current_user.id))
    empresa = service.create(payload)

    current_user.empresa_id = empresa.id
    session['user'] = current_user.to_session()
    current_app.logger.info(f"Empresa {empresa.id} created by {current_user.email}")
    return api_response(data=empresa.model_dump(mode='json'), status=201)


@empresa_bp.route('', methods=['PUT'])
@empresa_required
def update_empresa():
    service = EmpresaService()
    empresa = service.get_by_id(current_user.empresa_id)
    data = empresa.model_dump(include=set(EmpresaCreate.model_fields))
    data.update(request.get_json(silent=True) or {})
    data['user_id'] = current_user.id
    payload = EmpresaCreate(**data)

    empresa = service.update(current_user.empresa_id, payload)
    return api_response(data=empresa.model_dump(mode='json'))
