"""
Input coercion shared by the service layer.

Request bodies arrive as JSON or form data, so numbers and dates may come
as strings. Each helper returns a typed value or raises
DomainValidationError naming the field.
"""
import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.utils.dateparse import parse_date, parse_datetime

from apps.core.exceptions import DomainValidationError, NotFoundError

CENTS = Decimal('0.01')
# Money columns are DECIMAL(12, 2)
MAX_AMOUNT = Decimal(10) ** 10


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == '')


def parse_id(value, field: str) -> int:
    """Positive integer id. Booleans and non-numeric text are rejected."""
    if isinstance(value, bool) or is_blank(value):
        raise DomainValidationError(f'{field} inválido')
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise DomainValidationError(f'{field} inválido')
    if parsed < 1:
        raise DomainValidationError(f'{field} inválido')
    return parsed


def parse_optional_id(value, field: str):
    if is_blank(value):
        return None
    return parse_id(value, field)


def parse_patient_id(value) -> int:
    """A structurally invalid patient id is reported as not found."""
    try:
        return parse_id(value, 'patient_id')
    except DomainValidationError:
        raise NotFoundError('Paciente no encontrado')


def parse_money(value, field: str, default=None, allow_zero: bool = True) -> Decimal:
    """
    Decimal amount rounded to cents.

    Blank input returns `default` (when given) or fails. Negative values,
    NaN/Infinity and non-numeric text always fail.
    """
    if is_blank(value):
        if default is not None:
            return default
        raise DomainValidationError(f'{field} es requerido')
    if isinstance(value, bool):
        raise DomainValidationError(f'{field} debe ser numérico')
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise DomainValidationError(f'{field} debe ser numérico')
    if not amount.is_finite():
        raise DomainValidationError(f'{field} debe ser numérico')
    if amount < 0 or (amount == 0 and not allow_zero):
        raise DomainValidationError(
            f'{field} debe ser mayor o igual a 0' if allow_zero else f'{field} debe ser mayor a 0'
        )
    try:
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise DomainValidationError(f'{field} fuera de rango')
    if abs(amount) >= MAX_AMOUNT:
        raise DomainValidationError(f'{field} fuera de rango')
    return amount


def parse_day(value, field: str) -> datetime.date:
    """Calendar date from a date, a datetime or an ISO-8601 string."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if is_blank(value):
        raise DomainValidationError(f'{field} es requerido')
    text = str(value).strip()
    try:
        parsed = parse_date(text)
        if parsed is None:
            moment = parse_datetime(text)
            parsed = moment.date() if moment is not None else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise DomainValidationError(f'{field} inválido, use AAAA-MM-DD')
    return parsed


def clean_text(value):
    """Stripped text, or None when blank."""
    if is_blank(value):
        return None
    return str(value).strip()
