"""
Shared API dependencies.
Contains reusable dependency functions for FastAPI endpoints.
Centralizes common dependencies like the component container and authentication.
"""

from typing import Annotated

from fastapi import Depends

from timetracker.core.config import settings
from timetracker.core.container import Container, get_container
from timetracker.core.security import TokenData, require_role, verify_trigger_token

# Component container dependency
# Tests override get_container with in-memory stores
ContainerDep = Annotated[Container, Depends(get_container)]

# Admin user dependency for dashboard and notification routes
AdminUserDep = Annotated[TokenData, Depends(require_role(settings.ADMIN_GROUP))]

# Scheduler trigger authentication
TriggerAuthDep = Annotated[None, Depends(verify_trigger_token)]
