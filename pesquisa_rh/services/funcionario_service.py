from pesquisa_rh.models import STATUS_ATIVO, STATUS_INATIVO, Funcionario
from pesquisa_rh.services.table_service import TableService


class FuncionarioService(TableService):
    table_name = 'funcionarios'
    model = Funcionario
    parent_column = 'empresa_id'
    order_column = 'nome'
    label = 'funcionário'

    def get_ativos(self, empresa_id):
        return [f for f in self.get_by_parent_id(empresa_id) if f.ativo]

    def toggle_status(self, funcionario):
        novo_status = STATUS_INATIVO if funcionario.status == STATUS_ATIVO else STATUS_ATIVO
        return self.update(funcionario.id, {'status': novo_status})
