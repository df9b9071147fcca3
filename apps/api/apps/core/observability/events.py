"""
Domain events logging helpers.

These write structured log lines for business operations. They are the
operational channel and are separate from the patient event ledger stored
in the database (apps.clinical.services_events).
"""
from typing import Dict, Optional

from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'treatment_batch_created')
        entity_type: Type of entity (e.g., 'PatientService', 'PatientPayment')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, warning...)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'payment_created',
            entity_type='PatientPayment',
            entity_id=str(payment.id),
            entity_ids={'patient_id': str(payment.patient_id)},
            monto=str(payment.monto),
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'fallback']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.

    Example:
        log_consistency_checkpoint(
            'treatment_batch_group',
            entity_ids={'patient_id': '42', 'group_id': '17'},
            checks_passed={'group_assigned': True, 'members_share_group': True},
            members=2,
        )
    """
    all_passed = all(checks_passed.values())

    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))

    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_patient_event_append_failed(patient_id, event_type, error, **extra):
    """Log a patient event that could not be appended after the primary write."""
    log_domain_event(
        'patient_event_append',
        entity_type='PatientTreatmentEvent',
        entity_ids={'patient_id': str(patient_id)},
        result='failure',
        event_type=event_type,
        error_type=error.__class__.__name__,
        error=str(error),
        **extra
    )


def log_payment_catalog_fallback(catalog, name, fallback_id):
    """Log a payment catalog lookup that resolved to the sentinel id."""
    log_domain_event(
        'payment_catalog_fallback',
        entity_type='PaymentCatalog',
        result='fallback',
        catalog=catalog,
        lookup_name=name,
        fallback_id=fallback_id,
    )
