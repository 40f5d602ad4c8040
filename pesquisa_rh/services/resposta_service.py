from pesquisa_rh.models import STATUS_ATIVO, Resposta
from pesquisa_rh.services.formulario_service import FormularioService
from pesquisa_rh.services.funcionario_service import FuncionarioService
from pesquisa_rh.services.table_service import TableService


class RespostaService(TableService):
    table_name = 'respostas'
    model = Resposta
    parent_column = 'formulario_id'
    label = 'resposta'

    def get_by_funcionario_and_formulario(self, funcionario_id, formulario_id):
        response = self.execute(
            self.table().select('*')
                .eq('funcionario_id', funcionario_id)
                .eq('formulario_id', formulario_id),
            'buscar respostas'
        )
        return self.parse_many(response.data)

    def get_formulario_stats(self, formulario_id):
        """
        Responses of a form plus the number of active employees of the
        owning company. None when the form does not exist.
        """
        formulario = FormularioService(self._client).get_by_id(formulario_id)
        if not formulario:
            return None

        respostas = self.get_by_parent_id(formulario_id)
        total_funcionarios = FuncionarioService(self._client).count(
            empresa_id=formulario.empresa_id, status=STATUS_ATIVO
        )
        return {
            'respostas': respostas,
            'total_funcionarios': total_funcionarios,
        }
