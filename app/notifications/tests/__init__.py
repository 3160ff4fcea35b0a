"""
Tests for notifications app.

This package contains test modules for:
- test_models.py: Notification model tests
- test_services.py: NotificationService tests
- test_tasks.py: Celery task wrappers

Usage:
    pytest app/notifications/tests/
    pytest app/notifications/tests/test_services.py
"""
