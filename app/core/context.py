"""Per-request identifiers shared with the log formatter.

Everything lives in one ``ContextVar`` holding an immutable snapshot so a
task spawned mid-request keeps the values it started with.
"""

import contextvars
from dataclasses import dataclass, replace

UNSET = "-"


@dataclass(frozen=True)
class RequestScope:
    request_id: str = UNSET
    tenant_id: str = UNSET
    actor_id: str = UNSET


_scope: contextvars.ContextVar[RequestScope] = contextvars.ContextVar("request_scope", default=RequestScope())


def current_scope() -> RequestScope:
    return _scope.get()


def _bind(**values: str) -> None:
    _scope.set(replace(_scope.get(), **values))


def set_request_id(request_id: str) -> None:
    _bind(request_id=request_id)


def set_tenant_id(tenant_id: str) -> None:
    _bind(tenant_id=tenant_id)


def set_actor_id(actor_id: str) -> None:
    _bind(actor_id=actor_id)


def clear_context() -> None:
    _scope.set(RequestScope())
