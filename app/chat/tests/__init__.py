"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Conversation, Message and value type tests
- test_services.py: Locator, message, reaction, read state and draft services
- test_cascade.py: Channel, member and workspace removal
- test_tasks.py: Search index emission and Celery tasks
- test_blobs.py: BlobStore adapter
- test_views.py: REST API endpoint tests
- test_integration.py: Multi-user journeys

Usage:
    pytest chat/tests/
    pytest chat/tests/test_cascade.py
"""
