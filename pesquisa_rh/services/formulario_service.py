from pesquisa_rh.models import Formulario
from pesquisa_rh.services.table_service import TableService


class FormularioService(TableService):
    table_name = 'formularios'
    model = Formulario
    parent_column = 'empresa_id'
    order_column = 'created_at'
    order_desc = True
    label = 'formulário'
