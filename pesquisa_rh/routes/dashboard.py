from flask import Blueprint, current_app
from flask_login import current_user

from pesquisa_rh.auth import empresa_required
from pesquisa_rh.services.dashboard_service import DashboardService
from pesquisa_rh.utils import api_response

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/dashboard')


@dashboard_bp.route('', methods=['GET'])
@empresa_required
def home():
    stats = DashboardService(current_app.supabase).get_stats(current_user.empresa_id)
    return api_response(data=stats)
