"""Manifestes des proxys Velocity / BungeeCord : ConfigMap, Service, Deployment."""
from typing import Any, Dict, List

from ..config import settings
from ..k8s_utils import (
    config_map_name,
    create_minikura_labels,
    map_service_type,
    proxy_resource_name,
)
from ..schemas import ProxyKind, ProxySpec
from .manifest_base import ManifestBuilder


class ProxyManifestBuilder(ManifestBuilder):
    """Construit et applique les objets d'un proxy."""

    id_label = "proxy_id"

    def _labels(self, spec: ProxySpec, name: str) -> Dict[str, str]:
        return create_minikura_labels(name, spec.kind.value, "proxy-id", spec.id)

    def build_config_map(self, spec: ProxySpec) -> Dict[str, Any]:
        name = proxy_resource_name(spec.kind, spec.id)
        return {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {
                "name": config_map_name(name),
                "namespace": self.namespace,
                "labels": self._labels(spec, name),
            },
            "data": {
                "proxy-type": spec.kind.value,
                "proxy-id": spec.id,
                "external-address": spec.external_address,
                "minikura-api-key": spec.access_token,
            },
        }

    def build_service(self, spec: ProxySpec) -> Dict[str, Any]:
        name = proxy_resource_name(spec.kind, spec.id)
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {
                "name": name,
                "namespace": self.namespace,
                "labels": self._labels(spec, name),
            },
            "spec": {
                "selector": {"app": name},
                "ports": [
                    {
                        "port": spec.external_port,
                        "targetPort": spec.listen_port,
                        "protocol": "TCP",
                        "name": "minecraft",
                    }
                ],
                "type": map_service_type(spec.service_type, "LoadBalancer"),
            },
        }

    def build_workload(self, spec: ProxySpec) -> Dict[str, Any]:
        name = proxy_resource_name(spec.kind, spec.id)
        labels = self._labels(spec, name)
        builtins = [
            {"name": "TYPE", "value": spec.kind.value},
            {"name": "NETWORKADDRESS_CACHE_TTL", "value": "30"},
            self._heap_env(spec.memory, settings.DEFAULT_PROXY_MEMORY),
            self._api_key_env(config_map_name(name)),
        ]
        container = {
            "name": spec.kind.value.lower(),
            "image": settings.PROXY_IMAGE,
            "ports": [{"containerPort": spec.listen_port, "name": "minecraft"}],
            "env": self._container_env(builtins, spec.env_vars),
            "readinessProbe": {
                "tcpSocket": {"port": spec.listen_port},
                "initialDelaySeconds": 30,
                "periodSeconds": 10,
            },
            "resources": self._resources(spec.memory, settings.DEFAULT_PROXY_MEMORY),
        }
        return {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": name, "namespace": self.namespace, "labels": labels},
            "spec": {
                "replicas": 1,
                "selector": {"matchLabels": {"app": name}},
                "template": {"metadata": {"labels": labels}, "spec": {"containers": [container]}},
            },
        }

    def build_manifests(self, spec: ProxySpec) -> List[Dict[str, Any]]:
        return [self.build_config_map(spec), self.build_service(spec), self.build_workload(spec)]

    def apply(self, spec: ProxySpec) -> None:
        """Applique les objets du proxy puis retire ceux nommés d'après les autres types (404 ignoré)."""
        for manifest in self.build_manifests(spec):
            self._create_or_replace(manifest, spec.id)

        for other in ProxyKind:
            if other != spec.kind:
                self._delete_objects(proxy_resource_name(other, spec.id), spec.id)

    def remove(self, proxy_id: str, proxy_kind: ProxyKind) -> None:
        self._delete_objects(proxy_resource_name(proxy_kind, proxy_id), proxy_id)

    def _delete_objects(self, name: str, proxy_id: str) -> None:
        self._delete_ignoring_missing("Deployment", name, proxy_id)
        self._delete_ignoring_missing("Service", name, proxy_id)
        self._delete_ignoring_missing("ConfigMap", config_map_name(name), proxy_id)
