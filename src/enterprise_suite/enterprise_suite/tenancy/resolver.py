from __future__ import annotations

from typing import Iterable, Optional

from ..core.exceptions import AuthorizationError, NotFoundError
from .model import Tenant
from .repository import TenantRepository


def normalize_host(host: str) -> str:
    """Lowercase host without port."""
    return (host or "").split(":", 1)[0].strip().lower()


class TenantResolver:
    """Maps a request host to its tenant.

    Central domains (the marketing/admin site) resolve to ``None``.
    """

    def __init__(self, tenants: TenantRepository, central_domains: Iterable[str]):
        self._tenants = tenants
        self._central = frozenset(normalize_host(d) for d in central_domains)

    def is_central(self, host: str) -> bool:
        return normalize_host(host) in self._central

    def resolve(self, host: str) -> Optional[Tenant]:
        domain = normalize_host(host)
        if domain in self._central:
            return None
        tenant = self._tenants.find_by_domain(domain)
        if tenant is None:
            raise NotFoundError(f"No tenant is registered for {domain}.")
        if not tenant.is_active:
            raise AuthorizationError("This account is not active.")
        return tenant
