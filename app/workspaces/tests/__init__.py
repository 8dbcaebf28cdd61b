"""
Tests for workspaces app.

This package contains test modules for:
- test_models.py: Workspace, Member and Channel model tests
- test_authorization.py: MembershipResolver tests
- test_services.py: Workspace, channel and member services
- test_views.py: REST API endpoint tests
"""
