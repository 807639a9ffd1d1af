"""
Contact Management Permissions

Staff-only access to stored contact messages.
"""
from rest_framework import permissions


class IsContactAdmin(permissions.BasePermission):
    """
    Staff users, or users holding the contact message model permissions.

    Deleting additionally requires the delete permission (superusers have
    every permission).
    """

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False

        if request.method == 'DELETE':
            return user.has_perm('contact.delete_contactmessage')

        return user.is_staff or user.has_perm('contact.view_contactmessage')
