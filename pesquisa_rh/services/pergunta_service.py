from pesquisa_rh.models import Pergunta
from pesquisa_rh.services.table_service import TableService


class PerguntaService(TableService):
    table_name = 'perguntas'
    model = Pergunta
    parent_column = 'formulario_id'
    order_column = 'ordem'
    label = 'pergunta'

    def delete_by_formulario_id(self, formulario_id, only_ids=None):
        query = self.table().delete().eq('formulario_id', formulario_id)
        if only_ids is not None:
            query = query.in_('id', list(only_ids))
        self.execute(query, 'excluir perguntas')
