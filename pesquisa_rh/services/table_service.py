import logging

import httpx
from flask import current_app
from postgrest.exceptions import APIError
from pydantic import BaseModel, ValidationError

from pesquisa_rh.errors import (
    ConnectionFailure, ErrorMessages, NotFound, PermissionDenied, ServiceError
)

logger = logging.getLogger(__name__)

# PostgREST / Postgres error codes we translate
CODE_NO_ROWS = 'PGRST116'
CODE_PERMISSION = '42501'


def handle_supabase_error(error, operation):
    """
    Translates a Supabase failure into the service error taxonomy.
    Connectivity problems become retryable ConnectionFailure.
    """
    if isinstance(error, httpx.HTTPError):
        return ConnectionFailure(ErrorMessages.CONNECTION, details=str(error))

    message = getattr(error, 'message', None) or str(error)
    if 'Failed to fetch' in message:
        return ConnectionFailure(ErrorMessages.CONNECTION, details=message)

    code = getattr(error, 'code', None)
    if code == CODE_NO_ROWS:
        return NotFound(ErrorMessages.TABLE_NOT_FOUND, details=message)
    if code == CODE_PERMISSION:
        return PermissionDenied(ErrorMessages.PERMISSION, details=message)

    return ServiceError(message or f"Erro ao {operation.lower()}", details=code)


class TableService:
    """
    Thin request wrapper over one Supabase table.
    Subclasses set the table name, the row model and the parent column.
    """
    table_name = None
    model = None
    parent_column = None
    order_column = None
    order_desc = False
    label = 'registro'

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is not None:
            return self._client
        client = getattr(current_app, 'supabase', None)
        if client is None:
            raise ConnectionFailure(ErrorMessages.CONNECTION, details='Supabase client not configured')
        return client

    def table(self):
        return self.client.table(self.table_name)

    def execute(self, query, operation):
        try:
            return query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"{self.table_name} - {operation} error: {e}")
            raise handle_supabase_error(e, operation) from e

    def parse(self, row):
        return self.model.model_validate(row)

    def parse_many(self, rows):
        records = []
        for row in rows or []:
            try:
                records.append(self.parse(row))
            except ValidationError as e:
                logger.warning(f"{self.table_name}: skipping malformed row {row.get('id')}: {e}")
                continue
        return records

    @staticmethod
    def to_payload(data):
        if isinstance(data, BaseModel):
            return data.model_dump()
        return dict(data)

    def create(self, data):
        response = self.execute(
            self.table().insert(self.to_payload(data)),
            f"criar {self.label}"
        )
        if not response.data:
            raise ServiceError(f"Erro ao criar {self.label}")
        return self.parse(response.data[0])

    def create_many(self, items):
        payloads = [self.to_payload(item) for item in items]
        if not payloads:
            return []
        response = self.execute(self.table().insert(payloads), f"criar {self.label}s")
        return self.parse_many(response.data)

    def get_by_id(self, record_id):
        """Returns the row or None when it does not exist."""
        response = self.execute(
            self.table().select('*').eq('id', record_id).limit(1),
            f"buscar {self.label}"
        )
        if not response.data:
            return None
        return self.parse(response.data[0])

    def get_by_parent_id(self, parent_id):
        query = self.table().select('*').eq(self.parent_column, parent_id)
        if self.order_column:
            query = query.order(self.order_column, desc=self.order_desc)
        response = self.execute(query, f"buscar {self.label}s")
        records = self.parse_many(response.data)
        logger.info(f"{self.table_name}: {len(records)} rows for {self.parent_column}={parent_id}")
        return records

    def update(self, record_id, updates):
        updates = {k: v for k, v in self.to_payload(updates).items() if k != 'id'}
        response = self.execute(
            self.table().update(updates).eq('id', record_id),
            f"atualizar {self.label}"
        )
        if not response.data:
            raise NotFound(f"{self.label.capitalize()} não encontrado(a).")
        return self.parse(response.data[0])

    def delete(self, record_id):
        self.execute(self.table().delete().eq('id', record_id), f"excluir {self.label}")

    def count(self, **filters):
        query = self.table().select('id', count='exact')
        for column, value in filters.items():
            query = query.eq(column, value)
        response = self.execute(query, f"contar {self.label}s")
        return response.count or 0
