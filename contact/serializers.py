"""
Contact Management Serializers

Submission serializers are generated from the field schema (see
``contact.fields``); this module holds the admin-side serializers.
"""
from rest_framework import serializers

from .models import ContactMessage


class ContactMessageListSerializer(serializers.ModelSerializer):
    """Stored message summary for the staff list view."""

    sender_name = serializers.CharField(read_only=True)
    sender_email = serializers.CharField(read_only=True)
    subject = serializers.CharField(read_only=True)

    class Meta:
        model = ContactMessage
        fields = [
            'id', 'sender_name', 'sender_email', 'subject',
            'verified', 'created_at', 'verified_at'
        ]
        read_only_fields = fields


class ContactMessageDetailSerializer(serializers.ModelSerializer):
    """Full stored message, verification token excluded."""

    class Meta:
        model = ContactMessage
        fields = [
            'id', 'data', 'ip_address', 'user_agent',
            'verified', 'created_at', 'verified_at'
        ]
        read_only_fields = fields
