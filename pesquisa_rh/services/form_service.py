import logging

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import ValidationError

from pesquisa_rh.errors import (
    DuplicateSubmission, ErrorMessages, NotFound, PermissionDenied, ValidationFailure
)
from pesquisa_rh.models import (
    STATUS_ATIVO, STATUS_INATIVO, FormularioComPerguntas, FormularioCreate,
    PerguntaCreate, RespostaCreate
)
from pesquisa_rh.services.formulario_service import FormularioService
from pesquisa_rh.services.funcionario_service import FuncionarioService
from pesquisa_rh.services.pergunta_service import PerguntaService
from pesquisa_rh.services.resposta_service import RespostaService

logger = logging.getLogger(__name__)

TOKEN_SALT = 'formulario-resposta'


def parse_valor(raw):
    """Whole numbers only. Accepts ints and digit strings, rejects floats and booleans."""
    if isinstance(raw, bool):
        raise ValueError(f"invalid answer value: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    raise ValueError(f"invalid answer value: {raw!r}")


class FormService:
    @staticmethod
    def get_serializer():
        return URLSafeTimedSerializer(current_app.config['SECRET_KEY'])

    @staticmethod
    def generate_public_token(formulario_id, funcionario_id):
        s = FormService.get_serializer()
        return s.dumps({'fid': formulario_id, 'uid': funcionario_id}, salt=TOKEN_SALT)

    @staticmethod
    def verify_token(token, formulario_id):
        """Returns the employee id the link was issued to, or None."""
        s = FormService.get_serializer()
        try:
            data = s.loads(token, salt=TOKEN_SALT, max_age=current_app.config['FORM_TOKEN_MAX_AGE'])
        except (SignatureExpired, BadSignature):
            return None
        if data.get('fid') != formulario_id:
            return None
        return data.get('uid')

    @staticmethod
    def get_owned_form(formulario_id, empresa_id, client=None):
        formulario = FormularioService(client).get_by_id(formulario_id)
        if not formulario:
            raise NotFound(ErrorMessages.FORMULARIO_NOT_FOUND)
        if formulario.empresa_id != empresa_id:
            raise PermissionDenied(ErrorMessages.PERMISSION)
        return formulario

    @staticmethod
    def list_forms(empresa_id, client=None):
        """Forms of a company with their questions and number of responses."""
        formularios = FormularioService(client).get_by_parent_id(empresa_id)
        perguntas = PerguntaService(client)
        respostas = RespostaService(client)
        result = []
        for formulario in formularios:
            total = len({r.funcionario_id for r in respostas.get_by_parent_id(formulario.id)})
            result.append(FormularioComPerguntas(
                **formulario.model_dump(),
                perguntas=perguntas.get_by_parent_id(formulario.id),
                respostas=total
            ))
        return result

    @staticmethod
    def save_form(empresa_id, nome, perguntas, formulario_id=None, client=None):
        """
        Creates a form or renames an existing one. Questions are always
        replaced by the given texts, ordered from 1.
        """
        if not empresa_id:
            raise ValidationFailure(ErrorMessages.EMPRESA_NOT_FOUND)
        nome = (nome or '').strip()
        if not nome:
            raise ValidationFailure(ErrorMessages.FORMULARIO_NOME)
        textos = [t.strip() for t in perguntas or [] if t and t.strip()]
        if not textos:
            raise ValidationFailure(ErrorMessages.FORMULARIO_PERGUNTAS)

        formulario_service = FormularioService(client)
        pergunta_service = PerguntaService(client)

        antigas = []
        if formulario_id:
            FormService.get_owned_form(formulario_id, empresa_id, client)
            formulario = formulario_service.update(formulario_id, {'nome': nome})
            antigas = [p.id for p in pergunta_service.get_by_parent_id(formulario_id)]
        else:
            formulario = formulario_service.create(
                FormularioCreate(empresa_id=empresa_id, nome=nome, status=STATUS_ATIVO)
            )

        # New questions go in before the old ones are removed
        novas = pergunta_service.create_many([
            PerguntaCreate(formulario_id=formulario.id, texto=texto, ordem=index + 1)
            for index, texto in enumerate(textos)
        ])
        if antigas:
            pergunta_service.delete_by_formulario_id(formulario.id, only_ids=antigas)
        logger.info(f"Formulario {formulario.id} saved with {len(novas)} perguntas")
        return FormularioComPerguntas(**formulario.model_dump(), perguntas=novas)

    @staticmethod
    def toggle_status(formulario_id, empresa_id, client=None):
        formulario = FormService.get_owned_form(formulario_id, empresa_id, client)
        novo_status = STATUS_INATIVO if formulario.status == STATUS_ATIVO else STATUS_ATIVO
        return FormularioService(client).update(formulario.id, {'status': novo_status})

    @staticmethod
    def delete_form(formulario_id, empresa_id, client=None):
        formulario = FormService.get_owned_form(formulario_id, empresa_id, client)
        FormularioService(client).delete(formulario.id)

    @staticmethod
    def load_for_answering(formulario_id, funcionario_id, client=None):
        """
        Form, ordered questions and employee for the public answering page.
        Checks that the form is active and the employee may answer it.
        """
        formulario = FormularioService(client).get_by_id(formulario_id)
        if not formulario:
            raise NotFound(ErrorMessages.FORMULARIO_NOT_FOUND)
        if not formulario.ativo:
            raise ValidationFailure(ErrorMessages.FORMULARIO_INATIVO)

        funcionario = FuncionarioService(client).get_by_id(funcionario_id)
        if not funcionario:
            raise NotFound(ErrorMessages.FUNCIONARIO_NOT_FOUND)
        if funcionario.empresa_id != formulario.empresa_id:
            raise PermissionDenied(ErrorMessages.PERMISSION)
        if not funcionario.ativo:
            raise ValidationFailure(ErrorMessages.FUNCIONARIO_INATIVO)

        perguntas = PerguntaService(client).get_by_parent_id(formulario.id)
        return formulario, perguntas, funcionario

    @staticmethod
    def submit_answers(formulario_id, funcionario_id, answers, client=None):
        """
        Stores one employee's answers to a form as a single batch.
        `answers` maps pergunta_id -> value (1..5); every question is required
        and an employee may submit a form only once.
        """
        formulario, perguntas, funcionario = FormService.load_for_answering(formulario_id, funcionario_id, client)
        if answers is None:
            answers = {}
        if not isinstance(answers, dict):
            raise ValidationFailure(ErrorMessages.RESPOSTA_INVALIDA)
        answers = {str(k): v for k, v in answers.items()}

        if not perguntas or any(str(p.id) not in answers for p in perguntas):
            raise ValidationFailure(ErrorMessages.RESPOSTAS_INCOMPLETAS)

        resposta_service = RespostaService(client)
        if resposta_service.get_by_funcionario_and_formulario(funcionario.id, formulario.id):
            raise DuplicateSubmission(ErrorMessages.JA_RESPONDEU)

        try:
            payloads = [
                RespostaCreate(
                    formulario_id=formulario.id,
                    funcionario_id=funcionario.id,
                    pergunta_id=p.id,
                    valor=parse_valor(answers[str(p.id)])
                )
                for p in perguntas
            ]
        except (TypeError, ValueError, ValidationError) as e:
            raise ValidationFailure(ErrorMessages.RESPOSTA_INVALIDA, details=str(e)) from e

        created = resposta_service.create_many(payloads)
        logger.info(f"Funcionario {funcionario.id} answered formulario {formulario.id} ({len(created)} respostas)")
        return created
