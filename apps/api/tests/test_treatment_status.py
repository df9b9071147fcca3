"""
Tests for treatment status parsing and shared input coercion.
"""
import datetime
from decimal import Decimal

import pytest

from apps.clinical.models import TreatmentStatusChoices
from apps.clinical.status import VALID_STATUSES, normalize_status_text, parse_treatment_status
from apps.core.exceptions import DomainValidationError, NotFoundError
from apps.core.parsing import parse_day, parse_id, parse_money, parse_patient_id


class TestParseTreatmentStatus:

    @pytest.mark.parametrize('raw', ['por iniciar', 'POR INICIAR', '  Por Iniciar ', 'por   iniciar'])
    def test_variants_of_por_iniciar(self, raw):
        assert parse_treatment_status(raw) == TreatmentStatusChoices.POR_INICIAR

    @pytest.mark.parametrize('raw,expected', [
        ('en proceso', TreatmentStatusChoices.EN_PROCESO),
        ('EN PROCESO ', TreatmentStatusChoices.EN_PROCESO),
        ('terminado', TreatmentStatusChoices.TERMINADO),
        ('Terminado', TreatmentStatusChoices.TERMINADO),
    ])
    def test_other_statuses(self, raw, expected):
        assert parse_treatment_status(raw) == expected

    @pytest.mark.parametrize('raw', [None, '', '   '])
    def test_blank_defaults_to_por_iniciar(self, raw):
        assert parse_treatment_status(raw) == TreatmentStatusChoices.POR_INICIAR

    def test_blank_with_mandatory_status_is_rejected(self):
        with pytest.raises(DomainValidationError):
            parse_treatment_status('', default=None)

    def test_unknown_status_lists_valid_values(self):
        with pytest.raises(DomainValidationError) as exc_info:
            parse_treatment_status('Cancelado')

        payload = exc_info.value.as_payload()
        assert 'Cancelado' in payload['error']
        assert payload['valid'] == VALID_STATUSES
        assert VALID_STATUSES == ['Por Iniciar', 'En proceso', 'Terminado']

    def test_normalize_collapses_whitespace(self):
        assert normalize_status_text('  EN \t Proceso ') == 'en proceso'


class TestParsing:

    def test_parse_id_accepts_numeric_strings(self):
        assert parse_id('42', 'service_id') == 42

    @pytest.mark.parametrize('raw', ['abc', '0', '-3', True, None, ''])
    def test_parse_id_rejects_invalid(self, raw):
        with pytest.raises(DomainValidationError) as exc_info:
            parse_id(raw, 'service_id')
        assert 'service_id' in exc_info.value.message

    def test_invalid_patient_id_is_not_found(self):
        with pytest.raises(NotFoundError):
            parse_patient_id('abc')

    def test_parse_money_rounds_to_cents(self):
        assert parse_money('10.005', 'total_cost') == Decimal('10.01')

    def test_parse_money_blank_uses_default(self):
        assert parse_money(None, 'total_cost', default=Decimal('0.00')) == Decimal('0.00')

    @pytest.mark.parametrize('raw', ['-1', 'diez', 'NaN'])
    def test_parse_money_rejects_invalid(self, raw):
        with pytest.raises(DomainValidationError):
            parse_money(raw, 'total_cost', default=Decimal('0.00'))

    @pytest.mark.parametrize('raw', ['1e30', '1e15', '10000000000', '9999999999.999'])
    def test_parse_money_rejects_out_of_range(self, raw):
        with pytest.raises(DomainValidationError) as exc_info:
            parse_money(raw, 'monto', allow_zero=False)
        assert exc_info.value.message == 'monto fuera de rango'

    def test_parse_money_upper_bound(self):
        assert parse_money('9999999999.99', 'total_cost') == Decimal('9999999999.99')

    def test_parse_money_zero_not_allowed_for_payments(self):
        with pytest.raises(DomainValidationError) as exc_info:
            parse_money('0', 'monto', allow_zero=False)
        assert exc_info.value.message == 'monto debe ser mayor a 0'

    @pytest.mark.parametrize('raw', ['2024-01-10', '2024-01-10T15:30:00', datetime.date(2024, 1, 10)])
    def test_parse_day(self, raw):
        assert parse_day(raw, 'service_date') == datetime.date(2024, 1, 10)

    def test_parse_day_rejects_garbage(self):
        with pytest.raises(DomainValidationError):
            parse_day('10/01/2024', 'service_date')
