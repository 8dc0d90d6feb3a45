"""
URL configuration for the chat backend.

The real-time messaging core is served over WebSockets (see chat.routing);
the only HTTP route is the infrastructure health check.

URL Structure:
    /health/    - Health check endpoint (for load balancers, Docker)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.urls import path

from core.views import health_check

urlpatterns = [
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
]
