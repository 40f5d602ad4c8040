from flask import Blueprint, Response, current_app, request
from flask_login import current_user, login_required

from pesquisa_rh.auth import empresa_required
from pesquisa_rh.errors import ErrorMessages, NotFound, PermissionDenied, ValidationFailure
from pesquisa_rh.models import FuncionarioCreate
from pesquisa_rh.services.funcionario_service import FuncionarioService
from pesquisa_rh.services.import_service import employee_template_csv, parse_employee_file
from pesquisa_rh.utils import api_response

funcionarios_bp = Blueprint('funcionarios', __name__, url_prefix='/api/funcionarios')


def _get_owned(service, funcionario_id):
    funcionario = service.get_by_id(funcionario_id)
    if not funcionario:
        raise NotFound(ErrorMessages.FUNCIONARIO_NOT_FOUND)
    if funcionario.empresa_id != current_user.empresa_id:
        raise PermissionDenied(ErrorMessages.PERMISSION)
    return funcionario


def _ensure_unique_cpf(service, cpf, ignore_id=None):
    for funcionario in service.get_by_parent_id(current_user.empresa_id):
        if funcionario.cpf == cpf and funcionario.id != ignore_id:
            raise ValidationFailure('CPF já cadastrado para outro funcionário.')


@funcionarios_bp.route('', methods=['GET'])
@empresa_required
def list_funcionarios():
    funcionarios = FuncionarioService().get_by_parent_id(current_user.empresa_id)
    return api_response(data=[f.model_dump(mode='json') for f in funcionarios])


@funcionarios_bp.route('', methods=['POST'])
@empresa_required
def create_funcionario():
    service = FuncionarioService()
    payload = FuncionarioCreate(**dict(request.get_json(silent=True) or {}, empresa_id=current_user.empresa_id))
    _ensure_unique_cpf(service, payload.cpf)
    funcionario = service.create(payload)
    return api_response(data=funcionario.model_dump(mode='json'), status=201)


@funcionarios_bp.route('/<funcionario_id>', methods=['PUT'])
@empresa_required
def update_funcionario(funcionario_id):
    service = FuncionarioService()
    funcionario = _get_owned(service, funcionario_id)
    data = funcionario.model_dump(include=set(FuncionarioCreate.model_fields))
    data.update(request.get_json(silent=True) or {})
    data['empresa_id'] = current_user.empresa_id
    payload = FuncionarioCreate(**data)
    _ensure_unique_cpf(service, payload.cpf, ignore_id=funcionario.id)

    funcionario = service.update(funcionario.id, payload)
    return api_response(data=funcionario.model_dump(mode='json'))


@funcionarios_bp.route('/<funcionario_id>', methods=['DELETE'])
@empresa_required
def delete_funcionario(funcionario_id):
    service = FuncionarioService()
    funcionario = _get_owned(service, funcionario_id)
    service.delete(funcionario.id)
    current_app.logger.info(f"Funcionario {funcionario.id} deleted by {current_user.email}")
    return api_response(data={'id': funcionario.id})


@funcionarios_bp.route('/<funcionario_id>/toggle', methods=['POST'])
@empresa_required
def toggle_funcionario(funcionario_id):
    service = FuncionarioService()
    funcionario = service.toggle_status(_get_owned(service, funcionario_id))
    return api_response(data=funcionario.model_dump(mode='json'))


@funcionarios_bp.route('/import', methods=['POST'])
@empresa_required
def import_funcionarios():
    if 'file' not in request.files or request.files['file'].filename == '':
        raise ValidationFailure('Nenhum arquivo selecionado.')
    file = request.files['file']

    service = FuncionarioService()
    existing = [f.cpf for f in service.get_by_parent_id(current_user.empresa_id)]
    payloads, errors = parse_employee_file(file.filename, file.stream, current_user.empresa_id, existing)
    created = service.create_many(payloads)

    current_app.logger.info(f"Import by {current_user.email}: {len(created)} created, {len(errors)} rejected")
    return api_response(data={
        'importados': len(created),
        'erros': errors,
        'funcionarios': [f.model_dump(mode='json') for f in created],
    })


@funcionarios_bp.route('/template', methods=['GET'])
@login_required
def download_template():
    return Response(
        employee_template_csv(),
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=template_funcionarios.csv'}
    )
