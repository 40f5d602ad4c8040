from datetime import datetime
from typing import List, Optional

from flask_login import UserMixin
from pydantic import BaseModel, Field, field_validator

from pesquisa_rh.utils import is_valid_cnpj, is_valid_cpf, only_digits

# Enums (plain strings, matching the values stored in Supabase)
STATUS_ATIVO = 'ativo'
STATUS_INATIVO = 'inativo'

RESPOSTA_STATUS_RESPONDEU = 'respondeu'
RESPOSTA_STATUS_NAO_RESPONDEU = 'nao_respondeu'

# "All" sentinel used by every selection filter
TODOS = 'todos'

LIKERT_MIN = 1
LIKERT_MAX = 5


def _required_text(value):
    value = (value or '').strip()
    if not value:
        raise ValueError('Campo obrigatório')
    return value


# --- Rows as returned by Supabase ---

class Empresa(BaseModel):
    id: str
    razao_social: str
    cnpj: str
    nome_fantasia: Optional[str] = ''
    telefone: Optional[str] = ''
    email: Optional[str] = ''
    celular: Optional[str] = ''
    responsavel_legal: Optional[str] = ''
    cpf_responsavel: Optional[str] = ''
    nome_tecnico: Optional[str] = ''
    cpf_tecnico: Optional[str] = ''
    mte: Optional[str] = ''
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Funcionario(BaseModel):
    id: str
    empresa_id: str
    nome: str
    cargo: Optional[str] = ''
    setor: Optional[str] = ''
    cpf: Optional[str] = ''
    email: Optional[str] = ''
    status: str = STATUS_ATIVO
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def ativo(self):
        return self.status == STATUS_ATIVO


class Pergunta(BaseModel):
    id: str
    formulario_id: str
    texto: str
    ordem: int = 0
    created_at: Optional[datetime] = None


class Formulario(BaseModel):
    id: str
    empresa_id: str
    nome: str
    status: str = STATUS_ATIVO
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def ativo(self):
        return self.status == STATUS_ATIVO


class FormularioComPerguntas(Formulario):
    perguntas: List[Pergunta] = []
    respostas: int = 0


class Resposta(BaseModel):
    id: str
    formulario_id: str
    funcionario_id: str
    pergunta_id: str
    valor: int
    created_at: Optional[datetime] = None


class RespostaCompleta(Resposta):
    """Resposta joined with the employee and question it references."""
    funcionario: Funcionario
    pergunta: Pergunta
    formulario: Optional[Formulario] = None


# --- Insert payloads (validated before any request is made) ---

class EmpresaCreate(BaseModel):
    razao_social: str
    cnpj: str
    nome_fantasia: Optional[str] = ''
    telefone: Optional[str] = ''
    email: Optional[str] = ''
    celular: Optional[str] = ''
    responsavel_legal: Optional[str] = ''
    cpf_responsavel: Optional[str] = ''
    nome_tecnico: Optional[str] = ''
    cpf_tecnico: Optional[str] = ''
    mte: Optional[str] = ''
    user_id: Optional[str] = None

    @field_validator('razao_social')
    @classmethod
    def validate_razao_social(cls, v):
        return _required_text(v)

    @field_validator('cnpj')
    @classmethod
    def validate_cnpj(cls, v):
        if not is_valid_cnpj(v):
            raise ValueError('CNPJ inválido')
        return only_digits(v)

    @field_validator('cpf_responsavel', 'cpf_tecnico')
    @classmethod
    def validate_optional_cpf(cls, v):
        if v and not is_valid_cpf(v):
            raise ValueError('CPF inválido')
        return only_digits(v)


class FuncionarioCreate(BaseModel):
    empresa_id: str
    nome: str
    cargo: Optional[str] = ''
    setor: Optional[str] = ''
    cpf: str
    email: Optional[str] = ''
    status: str = STATUS_ATIVO

    @field_validator('nome')
    @classmethod
    def validate_nome(cls, v):
        return _required_text(v)

    @field_validator('setor', 'cargo', 'email')
    @classmethod
    def strip_text(cls, v):
        return (v or '').strip()

    @field_validator('cpf')
    @classmethod
    def validate_cpf(cls, v):
        if not is_valid_cpf(v):
            raise ValueError('CPF inválido')
        return only_digits(v)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        if v not in (STATUS_ATIVO, STATUS_INATIVO):
            raise ValueError('Status deve ser ativo ou inativo')
        return v


class FormularioCreate(BaseModel):
    empresa_id: str
    nome: str
    status: str = STATUS_ATIVO

    @field_validator('nome')
    @classmethod
    def validate_nome(cls, v):
        return _required_text(v)


class PerguntaCreate(BaseModel):
    formulario_id: str
    texto: str
    ordem: int = Field(..., ge=1)

    @field_validator('texto')
    @classmethod
    def validate_texto(cls, v):
        return _required_text(v)


class RespostaCreate(BaseModel):
    formulario_id: str
    funcionario_id: str
    pergunta_id: str
    valor: int = Field(..., ge=LIKERT_MIN, le=LIKERT_MAX)


# --- Session user (Supabase Auth) ---

class User(UserMixin):
    def __init__(self, id, email, empresa_id=None):
        self.id = id
        self.email = email
        self.empresa_id = empresa_id

    def to_session(self):
        return {'id': self.id, 'email': self.email, 'empresa_id': self.empresa_id}

    @classmethod
    def from_session(cls, data):
        if not data:
            return None
        return cls(data['id'], data.get('email'), data.get('empresa_id'))
