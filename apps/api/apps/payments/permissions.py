"""
Payments permissions.

- Admin, Practitioner, Reception: record and correct payments
- Accounting: read only
- Marketing: no access
"""
from apps.authz.models import RoleChoices
from apps.authz.permissions import RoleBasedPermission


class PaymentPermission(RoleBasedPermission):
    read_roles = frozenset({RoleChoices.ACCOUNTING})
    write_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER, RoleChoices.RECEPTION})
