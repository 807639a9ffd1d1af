"""
Contact Management Django Admin Configuration
"""
from django.contrib import admin
from django.utils.html import format_html_join

from .models import ContactMessage
from .signals import message_deleted


@admin.register(ContactMessage)
class ContactMessageAdmin(admin.ModelAdmin):
    """Admin interface for contact messages."""

    list_display = [
        'id', 'sender_name', 'sender_email', 'subject',
        'verified', 'created_at', 'verified_at'
    ]

    list_filter = [
        'verified', 'created_at'
    ]

    readonly_fields = [
        'id', 'fields_display', 'ip_address', 'user_agent',
        'verified', 'verified_at', 'created_at'
    ]

    fieldsets = (
        ('Message', {
            'fields': ('fields_display',)
        }),
        ('Verification', {
            'fields': ('verified', 'verified_at')
        }),
        ('Security & Tracking', {
            'fields': ('ip_address', 'user_agent'),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('id', 'created_at'),
            'classes': ('collapse',)
        }),
    )

    def fields_display(self, obj):
        """Submitted fields as a definition list."""
        return format_html_join(
            '', '<p><strong>{}</strong>: {}</p>',
            ((name, value) for name, value in (obj.data or {}).items())
        )
    fields_display.short_description = 'Submitted fields'

    def has_add_permission(self, request):
        """Messages only come in through the contact form."""
        return False

    def delete_model(self, request, obj):
        message_deleted.send(sender=self.__class__, message=obj, user=request.user)
        super().delete_model(request, obj)

    def delete_queryset(self, request, queryset):
        for obj in queryset:
            message_deleted.send(sender=self.__class__, message=obj, user=request.user)
        super().delete_queryset(request, queryset)
