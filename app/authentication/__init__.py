"""
Authentication application.

Identity collaborator for the chat core: email-based users, display-name
profiles and JWT token endpoints.

Usage:
    from authentication.models import User, Profile
"""
