"""
Shared test fixtures: an in-memory Supabase stand-in, Flask app/client and
a seeded company with employees, one form and its responses.
"""
import itertools
import threading
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from pesquisa_rh.app import create_app

BASE_TIME = datetime(2024, 3, 1, 12, 0, 0)


class FakeQuery:
    """Mimics the postgrest request builder for the calls the services make."""

    def __init__(self, db, table_name):
        self.db = db
        self.table_name = table_name
        self.mode = 'select'
        self.columns = '*'
        self.count_mode = None
        self.payload = None
        self.filters = []
        self.order_by = None
        self.limit_to = None

    def select(self, columns='*', count=None):
        self.mode, self.columns, self.count_mode = 'select', columns, count
        return self

    def insert(self, payload):
        self.mode, self.payload = 'insert', payload
        return self

    def update(self, values):
        self.mode, self.payload = 'update', values
        return self

    def delete(self):
        self.mode = 'delete'
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_to = n
        return self

    def _matching(self):
        return [row for row in self.db.tables.setdefault(self.table_name, []) if all(f(row) for f in self.filters)]

    def execute(self):
        with self.db.lock:
            self.db.requests.append((self.table_name, self.mode))
            if self.db.fail is not None:
                raise self.db.fail

            if self.mode == 'insert':
                items = self.payload if isinstance(self.payload, list) else [self.payload]
                return SimpleNamespace(data=[self.db.add(self.table_name, item) for item in items], count=None)

            rows = self._matching()
            if self.mode == 'update':
                for row in rows:
                    row.update(self.payload)
                return SimpleNamespace(data=[dict(r) for r in rows], count=None)
            if self.mode == 'delete':
                self.db.tables[self.table_name] = [r for r in self.db.tables[self.table_name] if r not in rows]
                return SimpleNamespace(data=[dict(r) for r in rows], count=None)

            total = len(rows)
            if self.order_by:
                column, desc = self.order_by
                rows = sorted(rows, key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
            if self.limit_to is not None:
                rows = rows[:self.limit_to]
            if self.columns != '*':
                wanted = [c.strip() for c in self.columns.split(',')]
                rows = [{c: r.get(c) for c in wanted} for r in rows]
            return SimpleNamespace(
                data=[dict(r) for r in rows],
                count=total if self.count_mode else None
            )


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.requests = []
        self.fail = None
        self.lock = threading.RLock()
        self.auth = MagicMock()
        self._ids = itertools.count(1)

    def table(self, name):
        return FakeQuery(self, name)

    def add(self, table_name, item):
        n = next(self._ids)
        row = dict(item)
        row.setdefault('id', f"{table_name}-{n}")
        row.setdefault('created_at', (BASE_TIME + timedelta(minutes=n)).isoformat())
        self.tables.setdefault(table_name, []).append(row)
        return dict(row)

    def seed(self, table_name, **fields):
        with self.lock:
            return self.add(table_name, fields)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def app(fake_supabase):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SUPABASE_CLIENT': fake_supabase,
    })
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield app


@pytest.fixture
def scenario(fake_supabase):
    """
    Company with two active employees (TI, RH) and one inactive, one active
    form with two questions and responses (e1,q1,4), (e1,q2,2), (e2,q1,5).
    """
    db = fake_supabase
    empresa = db.seed('empresas', razao_social='Empresa Teste', cnpj='11222333000181', user_id='user-1')
    e1 = db.seed('funcionarios', empresa_id=empresa['id'], nome='Ana Souza', cargo='Analista',
                 setor='TI', cpf='52998224725', email='ana@empresa.com', status='ativo')
    e2 = db.seed('funcionarios', empresa_id=empresa['id'], nome='Bruno Lima', cargo='Assistente',
                 setor='RH', cpf='11144477735', email='bruno@empresa.com', status='ativo')
    e3 = db.seed('funcionarios', empresa_id=empresa['id'], nome='Carla Dias', cargo='Gerente',
                 setor='RH', cpf='12345678909', email='carla@empresa.com', status='inativo')
    form = db.seed('formularios', empresa_id=empresa['id'], nome='Clima Organizacional', status='ativo')
    q1 = db.seed('perguntas', formulario_id=form['id'], texto='Sinto-me valorizado', ordem=1)
    q2 = db.seed('perguntas', formulario_id=form['id'], texto='Tenho sobrecarga', ordem=2)
    for funcionario, pergunta, valor in [(e1, q1, 4), (e1, q2, 2), (e2, q1, 5)]:
        db.seed('respostas', formulario_id=form['id'], funcionario_id=funcionario['id'],
                pergunta_id=pergunta['id'], valor=valor)
    return SimpleNamespace(
        user_id='user-1', empresa=empresa, e1=e1, e2=e2, e3=e3, form=form, q1=q1, q2=q2
    )


def login(client, user_id='user-1', email='rh@empresa.com', empresa_id=None):
    with client.session_transaction() as sess:
        sess['_user_id'] = user_id
        sess['_fresh'] = True
        sess['user'] = {'id': user_id, 'email': email, 'empresa_id': empresa_id}


@pytest.fixture
def logged_client(client, scenario):
    login(client, user_id=scenario.user_id, empresa_id=scenario.empresa['id'])
    return client
