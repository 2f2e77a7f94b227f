"""Mint a scoped access credential with the admin token."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from lamcheck.client.deadline import Deadline
from lamcheck.client.http import TimedRequester
from lamcheck.config import LamCheckConfig
from lamcheck.errors import DataShapeError
from lamcheck.schemas.service import AccessCredential, KeyRequest

logger = logging.getLogger("lamcheck.provision.credentials")

KEYS_CALL = "/admin/keys"


def default_label(now: Optional[datetime] = None) -> str:
    """Human-readable key label, e.g. ``lamcheck-2025-02-09``."""
    now = now or datetime.now(timezone.utc)
    return f"lamcheck-{now.date().isoformat()}"


class CredentialProvisioner:
    """
    One privileged ``POST /admin/keys`` call, never retried.

    A rejection or a response without a token points at misconfiguration
    (wrong admin token, unknown tenant), not at timing, so both fail hard.

    Args:
        http: Shared TimedRequester.
        config: Run configuration (api_url, admin token, tenant scope).
    """

    def __init__(self, http: TimedRequester, config: LamCheckConfig):
        self.http = http
        self.config = config

    def build_request(self, label: Optional[str] = None) -> KeyRequest:
        return KeyRequest(
            tenant_id=self.config.demo_tenant_id,
            scope_user=self.config.demo_scope_user,
            namespace=self.config.demo_namespace,
            label=label or default_label(),
        )

    def mint(self, label: Optional[str] = None, deadline: Optional[Deadline] = None) -> AccessCredential:
        """
        Mint a token scoped to the configured tenant, user and namespace.

        Raises:
            ConfigurationError: No admin token configured.
            RemoteRejectionError: Non-2xx response.
            DataShapeError: Response lacks a non-empty ``token``.
        """
        admin_token = self.config.require_admin_token()
        request = self.build_request(label)

        outcome = self.http.post(
            f"{self.config.api_url}/admin/keys",
            token=admin_token,
            json_body=request.model_dump(),
            deadline=deadline,
        ).raise_for_rejection(KEYS_CALL)

        body = outcome.body if isinstance(outcome.body, dict) else {}
        token = str(body.get("token") or "").strip()
        if not token:
            raise DataShapeError("admin/keys response missing token")

        credential = AccessCredential(
            token=token,
            tenant_id=request.tenant_id,
            scope_user=request.scope_user,
            namespace=request.namespace,
            label=request.label,
        )
        logger.info(
            f"Minted key for tenant={credential.tenant_id} user={credential.scope_user} "
            f"ns={credential.namespace} ({credential.masked})"
        )
        return credential
