import logging

from pesquisa_rh.models import STATUS_ATIVO
from pesquisa_rh.services.formulario_service import FormularioService
from pesquisa_rh.services.funcionario_service import FuncionarioService
from pesquisa_rh.services.loader import fetch_all
from pesquisa_rh.services.resposta_service import RespostaService

logger = logging.getLogger(__name__)


class DashboardService:
    """Counters shown on the home screen."""

    def __init__(self, client=None):
        self._client = client

    def _count_respostas(self, empresa_id):
        formularios = FormularioService(self._client).get_by_parent_id(empresa_id)
        ids = [f.id for f in formularios]
        if not ids:
            return 0
        service = RespostaService(self._client)
        response = service.execute(
            service.table().select('id', count='exact').in_('formulario_id', ids),
            'contar respostas'
        )
        return response.count or 0

    def get_stats(self, empresa_id):
        counts = fetch_all({
            'funcionarios': lambda: FuncionarioService(self._client).count(empresa_id=empresa_id, status=STATUS_ATIVO),
            'formularios': lambda: FormularioService(self._client).count(empresa_id=empresa_id),
            'respostas': lambda: self._count_respostas(empresa_id),
        })
        logger.info(f"Dashboard stats for empresa {empresa_id}: {counts}")
        return {
            'total_funcionarios': counts['funcionarios'],
            'total_formularios': counts['formularios'],
            'total_respostas': counts['respostas'],
        }
