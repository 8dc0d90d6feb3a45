"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User model and manager tests
- test_services.py: TokenService and IdentityService tests

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_services.py
"""
