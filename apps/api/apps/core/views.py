"""
Core views: current user profile and the shared domain error mapping.
"""
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import DomainError, TransactionError
from apps.core.observability import get_sanitized_logger, metrics
from apps.core.observability.correlation import bind_user

from .serializers import UserProfileSerializer

logger = get_sanitized_logger(__name__)

GENERIC_FAILURE_MESSAGE = 'No se pudo completar la operación'


def domain_error_response(exc: DomainError, location: str) -> Response:
    """
    Translate a service-layer error into an HTTP response.

    Transaction errors are logged with their cause and answered with a
    generic message; everything else returns the error text (and the
    `valid`/`fields` hints) to the client.
    """
    if isinstance(exc, TransactionError):
        metrics.exceptions_total.labels(
            exception_type=exc.__class__.__name__,
            location=location
        ).inc()
        logger.error(
            'Transaction failed',
            exc_info=exc.__cause__ is not None,
            extra={'event': 'transaction_failed', 'location': location}
        )
        return Response(
            {'error': GENERIC_FAILURE_MESSAGE},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response(exc.as_payload(), status=exc.status_code)


class CurrentUserView(APIView):
    """
    GET /api/auth/me/ - profile of the authenticated user.

    The frontend uses `roles` to decide which screens to show; the backend
    stays the authorization authority.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        profile_data = {
            'id': user.id,
            'email': user.email,
            'is_active': user.is_active,
            'roles': list(user.user_roles.values_list('role__name', flat=True)),
        }
        serializer = UserProfileSerializer(profile_data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class CorrelatedViewMixin:
    """
    Binds the DRF-authenticated user to the logging context.

    Mixed into API views whose logs should carry user id and roles.
    """

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        bind_user(request.user)
