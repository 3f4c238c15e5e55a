"""Doubles partagés par les tests (erreurs d'API et objets vivants)."""
from typing import Optional
from unittest.mock import MagicMock

from kubernetes.client.exceptions import ApiException


def api_error(status: int, body: Optional[str] = None, headers: Optional[dict] = None) -> ApiException:
    """ApiException as raised by the kubernetes client for a given HTTP status."""
    exc = ApiException(status=status, reason=f"HTTP {status}")
    exc.body = body
    exc.headers = headers
    return exc


def live_object(resource_version: str = "7", cluster_ip: Optional[str] = None) -> MagicMock:
    """Object returned by read_namespaced_* (typed client model)."""
    live = MagicMock()
    live.metadata.resource_version = resource_version
    live.spec.cluster_ip = cluster_ip
    return live
