"""
Contact Management Views

API endpoints for contact form submission, email verification and admin
management.
"""
import logging
import math

from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, status
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .conf import contact_settings
from .exceptions import (
    AlreadyVerified,
    InvalidToken,
    MailTransportError,
    ProcessingPrevented,
    RateLimited,
    SpamDetected,
    StorageError,
    TokenExpired,
)
from .fields import build_submission_serializer, describe_schema
from .models import ContactMessage
from .permissions import IsContactAdmin
from .rate_limiting import get_client_ip
from .serializers import ContactMessageDetailSerializer, ContactMessageListSerializer
from .services.spam_protection import TimingValidator
from .services.submission import RequestMetadata, get_submission_service
from .signals import message_deleted

logger = logging.getLogger(__name__)

REJECTED_MESSAGE = _('Your message could not be sent. Please try again later.')
FAILURE_MESSAGE = _('Sorry, something went wrong while sending your message. Please try again later.')


def _retry_after_seconds(retry_after, fallback):
    if retry_after is None:
        return fallback
    return max(0, math.ceil((retry_after - timezone.now()).total_seconds()))


class ContactFormView(APIView):
    """
    Public endpoint for contact form submissions.

    GET  /api/contact/  - form description and a fresh timing token
    POST /api/contact/  - submit the form

    No authentication required. Spam protection runs inside the
    submission service.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        """Describe the form for rendering."""
        service = get_submission_service()
        config = service.config
        timing = TimingValidator(config.min_submit_time, config.timing_field)

        return Response({
            'fields': describe_schema(service.schema),
            'honeypot_field': config.honeypot_field,
            'timing_field': config.timing_field,
            'timing_token': timing.issue_token(),
            'captcha': {
                'enabled': service.captcha.is_enabled(),
                'provider': service.captcha.provider_name(),
                'response_field': config.captcha.response_field,
            },
            'email_verification': service.is_email_verification_enabled(),
        })

    def post(self, request):
        """Submit a contact form."""
        service = get_submission_service()
        config = service.config

        serializer_class = build_submission_serializer(service.schema)
        serializer = serializer_class(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    'success': False,
                    'error': _('Validation failed'),
                    'fields': serializer.errors
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        # spam checks need the hidden fields the serializer does not declare
        fields = {
            name: request.data.get(name)
            for name in config.infrastructure_fields
            if name in request.data
        }
        fields.update(serializer.validated_data)

        session = getattr(request, 'session', None)
        metadata = RequestMetadata(
            ip_address=get_client_ip(request, trust_forwarded_for=config.trust_forwarded_for),
            user_agent=request.META.get('HTTP_USER_AGENT', '')[:500] or None,
            session_key=session.session_key if session is not None else None,
        )

        try:
            message = service.process(fields, metadata)
        except SpamDetected as e:
            logger.info(f"Contact submission rejected: {e}")
            return Response(
                {'success': False, 'error': REJECTED_MESSAGE},
                status=status.HTTP_400_BAD_REQUEST
            )
        except ProcessingPrevented as e:
            logger.info(f"Contact submission prevented: {e}")
            return Response(
                {'success': False, 'error': REJECTED_MESSAGE},
                status=status.HTTP_400_BAD_REQUEST
            )
        except RateLimited as e:
            retry_after = _retry_after_seconds(e.retry_after, config.rate_limit.interval)
            return Response(
                {
                    'success': False,
                    'error': _('Too many submissions. Please try again later.'),
                    'retry_after': retry_after
                },
                status=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={'Retry-After': str(retry_after)}
            )
        except (StorageError, MailTransportError):
            logger.exception("Contact submission failed")
            return Response(
                {'success': False, 'error': FAILURE_MESSAGE},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        if message.is_pending:
            text = _('Please check your inbox and confirm your email address to send your message.')
        else:
            text = _("Thank you! Your message has been sent. We'll get back to you soon.")

        return Response(
            {
                'success': True,
                'message': text,
                'verification_required': message.is_pending,
                'id': message.pk
            },
            status=status.HTTP_201_CREATED
        )


class ContactVerifyView(APIView):
    """
    Confirm a pending message from the emailed link.

    GET /api/contact/verify/<token>
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request, token):
        service = get_submission_service()

        try:
            service.verify(token)
        except AlreadyVerified:
            return Response(
                {'success': False, 'error': _('This message has already been confirmed.')},
                status=status.HTTP_409_CONFLICT
            )
        except InvalidToken:
            return Response(
                {'success': False, 'error': _('Invalid or unknown verification link.')},
                status=status.HTTP_404_NOT_FOUND
            )
        except TokenExpired:
            return Response(
                {'success': False, 'error': _('This verification link has expired. Please send your message again.')},
                status=status.HTTP_410_GONE
            )
        except (StorageError, MailTransportError):
            logger.exception("Contact verification failed")
            return Response(
                {'success': False, 'error': FAILURE_MESSAGE},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response({
            'success': True,
            'message': _('Thank you! Your email address is confirmed and your message has been sent.')
        })


class StoredMessagesMixin:
    """Stored messages exist only when the storage mode includes the database."""

    def get_queryset(self):
        if not contact_settings().storage.persists:
            raise NotFound(_('Contact messages are not stored.'))
        return ContactMessage.objects.all()


class ContactMessageListView(StoredMessagesMixin, generics.ListAPIView):
    """
    List stored contact messages (staff only).

    GET /api/admin/contact-messages/

    Query Parameters:
    - verified: Filter by verification state (true/false)
    - ordering: created_at, verified_at (prefix with - for descending)
    - page: Page number (default: 1)
    """

    permission_classes = [IsContactAdmin]
    serializer_class = ContactMessageListSerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['verified']
    ordering_fields = ['created_at', 'verified_at']
    ordering = ['-created_at']


class ContactMessageDetailView(StoredMessagesMixin, generics.RetrieveDestroyAPIView):
    """
    Show or delete a stored contact message.

    GET    /api/admin/contact-messages/:id/
    DELETE /api/admin/contact-messages/:id/
    """

    permission_classes = [IsContactAdmin]
    serializer_class = ContactMessageDetailSerializer
    lookup_field = 'id'

    def perform_destroy(self, instance):
        message_deleted.send(sender=self.__class__, message=instance, user=self.request.user)
        instance.delete()
