"""
Treatment status parsing.

The UI and older clients send free text ("por iniciar", "EN PROCESO ",
...). This is the only place that turns such text into a
TreatmentStatusChoices value.
"""
from apps.clinical.models import TreatmentStatusChoices
from apps.core.exceptions import DomainValidationError

VALID_STATUSES = [choice.value for choice in TreatmentStatusChoices]

_BY_NORMALIZED_LABEL = {
    ' '.join(choice.value.split()).lower(): choice for choice in TreatmentStatusChoices
}


def normalize_status_text(value) -> str:
    """Trim, collapse inner whitespace and lowercase."""
    return ' '.join(str(value).split()).lower()


def parse_treatment_status(value, default=TreatmentStatusChoices.POR_INICIAR):
    """
    Return the canonical status for `value`.

    Blank input yields `default`; pass default=None to make the status
    mandatory. Unknown text raises DomainValidationError listing the valid
    labels.
    """
    if value is None or normalize_status_text(value) == '':
        if default is None:
            raise DomainValidationError('status es requerido', valid=VALID_STATUSES)
        return default

    status = _BY_NORMALIZED_LABEL.get(normalize_status_text(value))
    if status is None:
        raise DomainValidationError(
            f'Status inválido: {value}',
            valid=VALID_STATUSES
        )
    return status
