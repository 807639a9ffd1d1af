"""
Contact Management Admin URL Configuration

Separate admin URLs for contact message management.
"""
from django.urls import path
from .views import ContactMessageListView, ContactMessageDetailView

app_name = 'contact_admin'

urlpatterns = [
    path('contact-messages/', ContactMessageListView.as_view(), name='message-list'),
    path('contact-messages/<int:id>/', ContactMessageDetailView.as_view(), name='message-detail'),
]
