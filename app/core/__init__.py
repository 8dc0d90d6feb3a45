"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks for the domain apps. No chat logic lives
here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Protocols (import from core.protocols):
    - ChannelLayer: Group fan-out interface of the Channels layer

Views (import from core.views):
    - health_check: Database and channel-layer health endpoint

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Protocols (no Django dependencies)
from .protocols import ChannelLayer

__all__ = [
    "BaseService",
    "ChannelLayer",
    "ServiceResult",
]
