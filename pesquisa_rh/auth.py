from functools import wraps

import httpx
from flask import Blueprint, current_app, request, session
from flask_login import current_user, login_required, login_user, logout_user
from supabase import AuthError

from pesquisa_rh.errors import ConnectionFailure, ErrorMessages, NotFound, ValidationFailure
from pesquisa_rh.models import User
from pesquisa_rh.services.empresa_service import EmpresaService
from pesquisa_rh.utils import api_response

auth = Blueprint('auth', __name__, url_prefix='/auth')


def remember_user(user):
    session['user'] = user.to_session()
    login_user(user)


def empresa_required(f):
    """Requires a logged user that already registered its company."""
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.empresa_id:
            empresa_id = EmpresaService().get_empresa_id_by_user_id(current_user.id)
            if not empresa_id:
                raise NotFound(ErrorMessages.EMPRESA_NOT_FOUND)
            current_user.empresa_id = empresa_id
            session['user'] = current_user.to_session()
        return f(*args, **kwargs)
    return decorated_function


def _credentials():
    data = request.get_json(silent=True) or request.form
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password:
        raise ValidationFailure(ErrorMessages.CREDENCIAIS)
    return email, password


@auth.route('/login', methods=['POST'])
def login():
    email, password = _credentials()
    try:
        res = current_app.supabase.auth.sign_in_with_password({
            "email": email,
            "password": password
        })
    except httpx.HTTPError as e:
        raise ConnectionFailure(ErrorMessages.CONNECTION, details=str(e)) from e
    except AuthError as e:
        current_app.logger.info(f"Login failed for {email}: {e}")
        return api_response(success=False, error=ErrorMessages.CREDENCIAIS, status=401)

    supabase_user = res.user
    if not supabase_user:
        return api_response(success=False, error=ErrorMessages.CREDENCIAIS, status=401)

    empresa_id = EmpresaService().get_empresa_id_by_user_id(supabase_user.id)
    user = User(supabase_user.id, supabase_user.email or email, empresa_id)
    remember_user(user)
    current_app.logger.info(f"Login success: {user.email} (empresa {empresa_id})")
    return api_response(data=user.to_session())


@auth.route('/register', methods=['POST'])
def register():
    email, password = _credentials()
    if len(password) < 6:
        raise ValidationFailure('A senha deve ter pelo menos 6 caracteres.')

    try:
        res = current_app.supabase.auth.sign_up({
            "email": email,
            "password": password
        })
    except httpx.HTTPError as e:
        raise ConnectionFailure(ErrorMessages.CONNECTION, details=str(e)) from e
    except AuthError as e:
        current_app.logger.warning(f"Supabase sign up failed for {email}: {e}")
        return api_response(success=False, error=f"Erro ao criar conta: {e}", status=400)

    if not res.user:
        return api_response(success=False, error='Erro desconhecido no cadastro.', status=400)

    user = User(res.user.id, res.user.email or email)
    remember_user(user)
    current_app.logger.info(f"New account: {user.email}")
    return api_response(data=user.to_session(), status=201)


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    try:
        current_app.supabase.auth.sign_out()
    except (AuthError, httpx.HTTPError) as e:
        current_app.logger.warning(f"Supabase sign out failed: {e}")
    current_app.extensions['selection_guards'].discard(current_user.id)
    logout_user()
    session.pop('user', None)
    return api_response(data=None)


@auth.route('/me')
@login_required
def me():
    return api_response(data=current_user.to_session())
