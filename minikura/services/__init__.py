"""
Constructeurs de manifestes Kubernetes, un par type d'entité.
Tous partagent le socle create-or-replace de ManifestBuilder.
"""
from .manifest_base import ManifestBuilder
from .compute_manifests import ComputeManifestBuilder
from .proxy_manifests import ProxyManifestBuilder

__all__ = [
    "ManifestBuilder",
    "ComputeManifestBuilder",
    "ProxyManifestBuilder",
]
