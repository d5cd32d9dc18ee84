from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional

from azure.identity import ClientSecretCredential, WorkloadIdentityCredential

from ..util.errors import AuthResolutionError, AzureClientError, map_azure_error

AUTH_METHODS = {"auto", "client_secret", "workload_identity"}


@dataclass(frozen=True)
class AuthContext:
    """
    Holds the resolved credential used to construct Azure SDK clients.
    `method` records which variant was resolved; both variants expose the same
    get_token() capability and are passed to clients unchanged.
    """

    method: str  # client_secret|workload_identity (resolved final)
    credential: Any
    tenant_id: Optional[str]
    client_id: Optional[str]

    def get_token(self, *scopes: str) -> Any:
        return self.credential.get_token(*scopes)


class AuthError(AuthResolutionError):
    pass


def _federated_token_file(explicit: Optional[str]) -> Optional[str]:
    return explicit or os.getenv("AZURE_FEDERATED_TOKEN_FILE")


def resolve_auth(
    method: str,
    tenant_id: Optional[str],
    client_id: Optional[str],
    client_secret: Optional[str] = None,
    federated_token_file: Optional[str] = None,
) -> AuthContext:
    """
    Resolve auth according to requested method.
    - auto: workload identity when a federated token file is available, else client secret
    - client_secret: service principal (tenant, client id, client secret)
    - workload_identity: federated token exchanged for the app registration (AKS, GitHub OIDC)
    """
    method = (method or "auto").lower()

    def ctx_from_client_secret() -> AuthContext:
        if not (tenant_id and client_id and client_secret):
            raise AuthError(
                "Client secret auth requires AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET."
            )
        try:
            credential = ClientSecretCredential(tenant_id, client_id, client_secret)
        except Exception as e:
            mapped = map_azure_error(e, "Azure SDK error while creating client secret credential")
            if mapped:
                raise mapped from e
            raise AuthError(f"Failed to create client secret credential: {e}") from e
        return AuthContext(method="client_secret", credential=credential, tenant_id=tenant_id, client_id=client_id)

    def ctx_from_workload_identity() -> AuthContext:
        token_file = _federated_token_file(federated_token_file)
        if not (tenant_id and client_id and token_file):
            raise AuthError(
                "Workload identity auth requires AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_FEDERATED_TOKEN_FILE."
            )
        try:
            credential = WorkloadIdentityCredential(
                tenant_id=tenant_id,
                client_id=client_id,
                token_file_path=token_file,
            )
        except Exception as e:
            mapped = map_azure_error(e, "Azure SDK error while creating workload identity credential")
            if mapped:
                raise mapped from e
            raise AuthError(f"Failed to create workload identity credential: {e}") from e
        return AuthContext(
            method="workload_identity", credential=credential, tenant_id=tenant_id, client_id=client_id
        )

    if method == "client_secret":
        return ctx_from_client_secret()
    if method == "workload_identity":
        return ctx_from_workload_identity()
    if method != "auto":
        raise AuthError(f"Unsupported auth method: {method}")

    # auto resolution order: workload identity -> client secret
    if _federated_token_file(federated_token_file):
        try:
            return ctx_from_workload_identity()
        except AuthError:
            pass
    try:
        return ctx_from_client_secret()
    except AzureClientError:
        raise
    except Exception as e:
        raise AuthError(
            "Failed to resolve auth in 'auto' mode. Tried workload identity, then client secret.\n"
            f"Last error: {e}"
        ) from e
