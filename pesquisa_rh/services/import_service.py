import csv
import io
import logging
import unicodedata
import zipfile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError

from pesquisa_rh.errors import ErrorMessages, ValidationFailure
from pesquisa_rh.models import STATUS_ATIVO, FuncionarioCreate
from pesquisa_rh.utils import only_digits

logger = logging.getLogger(__name__)

TEMPLATE_HEADERS = ['Nome', 'Cargo', 'Setor', 'CPF', 'Email']
TEMPLATE_EXAMPLE = ['Maria da Silva', 'Analista', 'RH', '529.982.247-25', 'maria@empresa.com.br']

# normalized header -> FuncionarioCreate field
HEADER_ALIASES = {
    'nome': 'nome',
    'name': 'nome',
    'cargo': 'cargo',
    'funcao': 'cargo',
    'setor': 'setor',
    'departamento': 'setor',
    'cpf': 'cpf',
    'email': 'email',
    'e-mail': 'email',
}


def _normalize_header(value):
    text = str(value).strip().lower() if value is not None else ''
    return unicodedata.normalize('NFKD', text).encode('ascii', 'ignore').decode('ascii')


def _cell_text(value):
    text = str(value).strip() if value is not None else ''
    # Excel turns numeric CPFs into floats
    if text.endswith('.0') and text[:-2].isdigit():
        text = text[:-2]
    return text


def _read_csv(stream):
    content = stream.read()
    if isinstance(content, bytes):
        try:
            content = content.decode('utf-8-sig')
        except UnicodeDecodeError:
            # Excel on Windows saves CSV as cp1252
            content = content.decode('cp1252', errors='replace')
    sample = content[:2048]
    delimiter = ';' if sample.count(';') > sample.count(',') else ','
    reader = csv.reader(io.StringIO(content, newline=''), delimiter=delimiter)
    try:
        return [row for row in reader]
    except csv.Error as e:
        raise ValidationFailure(ErrorMessages.ARQUIVO_INVALIDO, details=str(e)) from e


def _read_xlsx(stream):
    try:
        wb = load_workbook(stream, read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError) as e:
        logger.warning(f"Unreadable xlsx upload: {e}")
        raise ValidationFailure(ErrorMessages.ARQUIVO_INVALIDO, details=str(e)) from e
    try:
        return [list(row) for row in wb.active.iter_rows(values_only=True)]
    finally:
        wb.close()


def read_rows(filename, stream):
    name = (filename or '').lower()
    if name.endswith('.csv'):
        return _read_csv(stream)
    if name.endswith('.xlsx'):
        return _read_xlsx(stream)
    raise ValidationFailure(ErrorMessages.ARQUIVO_INVALIDO)


def parse_employee_file(filename, stream, empresa_id, existing_cpfs=()):
    """
    Reads an employee spreadsheet (CSV or XLSX, first row is the header).
    Returns (payloads, errors): valid FuncionarioCreate payloads and
    "Linha N: ..." messages for rejected lines. CPFs already registered,
    or repeated inside the file, are rejected.
    """
    rows = read_rows(filename, stream)
    if not rows:
        raise ValidationFailure(ErrorMessages.ARQUIVO_INVALIDO, details='Arquivo vazio')

    columns = {}
    for index, header in enumerate(rows[0]):
        field = HEADER_ALIASES.get(_normalize_header(header))
        if field and field not in columns:
            columns[field] = index
    missing = [f for f in ('nome', 'cpf') if f not in columns]
    if missing:
        raise ValidationFailure(
            ErrorMessages.ARQUIVO_INVALIDO,
            details=f"Colunas obrigatórias ausentes: {', '.join(missing)}"
        )

    seen = {only_digits(c) for c in existing_cpfs}
    payloads, errors = [], []
    for line_number, row in enumerate(rows[1:], start=2):
        values = {
            field: _cell_text(row[index]) if index < len(row) else ''
            for field, index in columns.items()
        }
        if not any(values.values()):
            continue

        try:
            payload = FuncionarioCreate(empresa_id=empresa_id, status=STATUS_ATIVO, **values)
        except ValidationError as e:
            reasons = '; '.join(err['msg'].replace('Value error, ', '') for err in e.errors())
            errors.append(f"Linha {line_number}: {reasons}")
            continue

        if payload.cpf in seen:
            errors.append(f"Linha {line_number}: CPF já cadastrado")
            continue
        seen.add(payload.cpf)
        payloads.append(payload)

    logger.info(f"Import {filename}: {len(payloads)} valid, {len(errors)} rejected")
    return payloads, errors


def employee_template_csv():
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(TEMPLATE_HEADERS)
    writer.writerow(TEMPLATE_EXAMPLE)
    return output.getvalue()
