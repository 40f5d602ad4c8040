from datetime import datetime, timedelta, timezone
from flask import jsonify

LIKERT_LABELS = {
    1: 'Nunca',
    2: 'Raramente',
    3: 'Às vezes',
    4: 'Frequentemente',
    5: 'Sempre'
}


def get_now_br(offset_hours=-3):
    """Returns the current time in Brasília (UTC-3)"""
    return datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=offset_hours)


def api_response(success=True, data=None, error=None, status=200, **extra):
    """Standardized JSON response for all API routes."""
    response = {
        'success': success,
        'data': data,
        'error': error
    }
    response.update(extra)
    return jsonify(response), status


def only_digits(value):
    return "".join(filter(str.isdigit, value or ""))


def _check_digit(digits, weights):
    total = sum(int(d) * w for d, w in zip(digits, weights))
    rest = total % 11
    return '0' if rest < 2 else str(11 - rest)


def is_valid_cpf(value):
    cpf = only_digits(value)
    if len(cpf) != 11 or cpf == cpf[0] * 11:
        return False
    first = _check_digit(cpf[:9], range(10, 1, -1))
    second = _check_digit(cpf[:9] + first, range(11, 1, -1))
    return cpf[-2:] == first + second


def is_valid_cnpj(value):
    cnpj = only_digits(value)
    if len(cnpj) != 14 or cnpj == cnpj[0] * 14:
        return False
    weights = [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
    first = _check_digit(cnpj[:12], weights)
    second = _check_digit(cnpj[:12] + first, [6] + weights)
    return cnpj[-2:] == first + second


def likert_label(valor):
    return LIKERT_LABELS.get(valor, str(valor))


def format_date_br(value, with_time=False):
    if not value:
        return ''
    return value.strftime('%d/%m/%Y %H:%M' if with_time else '%d/%m/%Y')
