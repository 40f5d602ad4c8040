from pesquisa_rh.models import Empresa
from pesquisa_rh.services.table_service import TableService


class EmpresaService(TableService):
    table_name = 'empresas'
    model = Empresa
    parent_column = 'user_id'
    label = 'empresa'

    def get_by_user_id(self, user_id):
        """One company per account owner; None before onboarding."""
        response = self.execute(
            self.table().select('*').eq('user_id', user_id).limit(1),
            'buscar empresa'
        )
        if not response.data:
            return None
        return self.parse(response.data[0])

    def get_empresa_id_by_user_id(self, user_id):
        response = self.execute(
            self.table().select('id').eq('user_id', user_id).limit(1),
            'buscar empresa'
        )
        if not response.data:
            return None
        return response.data[0].get('id')
