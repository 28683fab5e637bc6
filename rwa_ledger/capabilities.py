"""
capabilities.py - Declarative capability table for ledger operations

Every privileged operation names the capability a caller must hold. The
ledger does not manage roles itself: each guarded component accepts an
optional authorizer callable and asks it before doing anything else.

    def authorizer(capability: Capability, operation: str) -> bool: ...

With no authorizer installed every call passes; deciding who holds which
capability is the collaborator's job.
"""

from __future__ import annotations
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional

from .core import Unauthorized


class Capability(Enum):
    """Capabilities that gate ledger operations."""
    ADMIN = "admin"
    AGENT = "agent"
    COMPLIANCE_ADMIN = "compliance_admin"
    ASSET_MANAGER = "asset_manager"
    CORPORATE_ACTIONS = "corporate_actions"
    HOLDER = "holder"


# authorizer(capability, operation_name) -> bool
Authorizer = Callable[[Capability, str], bool]


def requires(capability: Capability) -> Callable:
    """
    Mark a method as requiring a capability.

    The wrapped method consults ``self.authorizer`` (if any) before running
    and raises Unauthorized when it answers False. The capability is also
    exposed as ``method.required_capability`` for capability_table().
    """
    def decorator(method: Callable) -> Callable:
        @wraps(method)
        def wrapper(self, *args, **kwargs):
            authorizer: Optional[Authorizer] = getattr(self, "authorizer", None)
            if authorizer is not None and not authorizer(capability, method.__name__):
                raise Unauthorized(capability, method.__name__)
            return method(self, *args, **kwargs)

        wrapper.required_capability = capability
        return wrapper
    return decorator


def capability_table(cls: type) -> Dict[str, Capability]:
    """Return {operation_name: capability} for every guarded method of cls."""
    table = {}
    for name in dir(cls):
        attr = getattr(cls, name, None)
        capability = getattr(attr, "required_capability", None)
        if isinstance(capability, Capability):
            table[name] = capability
    return table


def required_capability(obj: Any, operation: str) -> Optional[Capability]:
    """Return the capability guarding obj.operation, or None if unguarded."""
    return getattr(getattr(obj, operation, None), "required_capability", None)
