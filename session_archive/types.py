"""
Shared type definitions for the session-archive package.

Centralizes common type annotations used across multiple modules.
"""

from datetime import datetime
from typing import Annotated, Any, Literal

import pydantic

# Pydantic-enhanced datetime for JSON serialization (allows string→datetime conversion)
JsonDatetime = Annotated[datetime, pydantic.Field(strict=False)]

# Message author roles
Role = Literal['user', 'model', 'system']

# Opaque settings record (key -> JSON scalar)
SettingsMap = dict[str, Any]
