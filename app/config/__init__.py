# =============================================================================
# Django Project Configuration Package
# =============================================================================
# This package contains the settings, root URL conf and the ASGI application
# that routes HTTP and WebSocket traffic.
# =============================================================================
