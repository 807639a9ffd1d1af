"""
Contact Management App

Handles contact form submissions:
- Public contact form with honeypot, timing, rate limit and captcha checks
- Optional storage with email verification of the sender
- Email notifications (admin notification, verification, auto-reply)
- Staff management of stored messages
"""
