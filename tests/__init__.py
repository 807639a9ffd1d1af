"""
Centralized test suite for the contact form service.

Test Organization:
- integration/ - service-level tests of the contact pipeline and its parts

App API tests live next to the app in contact/tests.py.
"""
