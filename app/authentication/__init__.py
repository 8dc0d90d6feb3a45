"""
Authentication application.

This app owns the Identity side of the chat backend: the user account that a
WebSocket connection binds to once its token is verified, together with that
account's presence (online/offline, last seen).

Key components:
    - User model: Email-based account with display name, avatar and presence
    - TokenService: JWT verification for the socket handshake
    - IdentityService: Identity lookup and presence transitions

Usage:
    from authentication.models import User
    from authentication.services import IdentityService, TokenService
"""
