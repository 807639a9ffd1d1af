"""
Contact Management URL Configuration
"""
from django.urls import path, re_path
from .views import ContactFormView, ContactVerifyView

app_name = 'contact'

# Public URLs (no auth required)
urlpatterns = [
    path('', ContactFormView.as_view(), name='submit'),
    re_path(r'^verify/(?P<token>[a-f0-9]{64})/?$', ContactVerifyView.as_view(), name='verify'),
]
