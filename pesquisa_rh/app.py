import os

from dotenv import load_dotenv
from flask import Flask, session
from flask_login import LoginManager
from pydantic import ValidationError
from werkzeug.middleware.proxy_fix import ProxyFix

from pesquisa_rh.errors import ServiceError
from pesquisa_rh.models import User
from pesquisa_rh.services.loader import GuardRegistry
from pesquisa_rh.services.supabase_service import check_connection, init_supabase
from pesquisa_rh.utils import api_response

load_dotenv()  # Load env vars before anything else

DEFAULT_TOKEN_MAX_AGE = 7 * 24 * 3600


def create_app(test_config=None):
    app = Flask(__name__, instance_path='/tmp')
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # --- CONFIGURATION ---
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'pesquisa-rh-dev-key')
    app.config['SUPABASE_URL'] = os.environ.get('SUPABASE_URL')
    app.config['SUPABASE_KEY'] = os.environ.get('SUPABASE_KEY')
    app.config['SUPABASE_SERVICE_ROLE_KEY'] = os.environ.get('SUPABASE_SERVICE_ROLE_KEY')
    app.config['FORM_TOKEN_MAX_AGE'] = int(os.environ.get('FORM_TOKEN_MAX_AGE', DEFAULT_TOKEN_MAX_AGE))
    app.config['EXPORT_TIMEZONE_OFFSET'] = int(os.environ.get('EXPORT_TIMEZONE_OFFSET', -3))
    app.config['SELECTION_GUARDS_MAX'] = int(os.environ.get('SELECTION_GUARDS_MAX', 1024))

    if test_config:
        app.config.update(test_config)

    # Supabase Setup
    if 'SUPABASE_CLIENT' in app.config:
        app.supabase = app.config['SUPABASE_CLIENT']
    else:
        try:
            app.supabase = init_supabase(app)
        except Exception as supabase_e:
            app.logger.error(f"Supabase Init Error: {supabase_e}")
            app.supabase = None

    # One selection guard per logged user for the results view
    app.extensions['selection_guards'] = GuardRegistry(max_size=app.config['SELECTION_GUARDS_MAX'])

    # --- INITIALIZE EXTENSIONS ---
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        user = User.from_session(session.get('user'))
        if user is None or str(user.id) != str(user_id):
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return api_response(success=False, error='Autenticação necessária.', status=401)

    # --- ERROR HANDLERS ---
    @app.errorhandler(ServiceError)
    def service_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{type(error).__name__}: {error.message} ({error.details})")
        else:
            app.logger.warning(f"{type(error).__name__}: {error.message}")
        return api_response(
            success=False,
            error=error.message,
            status=error.status_code,
            retryable=error.retryable
        )

    @app.errorhandler(ValidationError)
    def validation_error(error):
        messages = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg'].replace('Value error, ', '')}"
            for err in error.errors()
        ]
        return api_response(success=False, error='; '.join(messages), status=400)

    @app.errorhandler(404)
    def not_found_error(error):
        return api_response(success=False, error='Recurso não encontrado.', status=404)

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal error: {error}")
        return api_response(success=False, error='Erro interno do servidor.', status=500)

    # --- BLUEPRINTS ---
    from pesquisa_rh.auth import auth as auth_blueprint
    from pesquisa_rh.routes.dashboard import dashboard_bp
    from pesquisa_rh.routes.empresa import empresa_bp
    from pesquisa_rh.routes.formularios import formularios_bp
    from pesquisa_rh.routes.funcionarios import funcionarios_bp
    from pesquisa_rh.routes.public import public_bp
    from pesquisa_rh.routes.respostas import respostas_bp
    from pesquisa_rh.routes.resultados import resultados_bp

    app.register_blueprint(auth_blueprint)
    app.register_blueprint(empresa_bp)
    app.register_blueprint(funcionarios_bp)
    app.register_blueprint(formularios_bp)
    app.register_blueprint(respostas_bp)
    app.register_blueprint(resultados_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(public_bp)

    @app.route('/ping')
    def ping():
        return api_response(data={
            'status': 'ok',
            'supabase': check_connection(app.supabase),
        })

    return app
