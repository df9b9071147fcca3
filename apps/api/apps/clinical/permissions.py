"""
Clinical permissions.

- Admin, Practitioner, Reception: read and write treatments and events
- Accounting: read only
- Marketing: no access
"""
from apps.authz.models import RoleChoices
from apps.authz.permissions import RoleBasedPermission


class TreatmentPermission(RoleBasedPermission):
    read_roles = frozenset({RoleChoices.ACCOUNTING})
    write_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER, RoleChoices.RECEPTION})


class PatientEventPermission(RoleBasedPermission):
    read_roles = frozenset({RoleChoices.ACCOUNTING})
    write_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER, RoleChoices.RECEPTION})


class CatalogPermission(RoleBasedPermission):
    """Catalogs are read-only over the API; every clinic role but marketing may read."""
    read_roles = frozenset({
        RoleChoices.ADMIN,
        RoleChoices.PRACTITIONER,
        RoleChoices.RECEPTION,
        RoleChoices.ACCOUNTING,
    })
