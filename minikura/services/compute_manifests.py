"""Manifestes des serveurs de jeu : ConfigMap, Service puis Deployment ou StatefulSet."""
import logging
from typing import Any, Dict, List, Optional

from ..config import settings
from ..k8s_utils import (
    compute_resource_name,
    config_map_name,
    create_minikura_labels,
    map_service_type,
)
from ..schemas import ComputeKind, ComputeSpec
from .manifest_base import ManifestBuilder

logger = logging.getLogger("minikura.manifests")

GAME_PORT = 25565


class ComputeManifestBuilder(ManifestBuilder):
    """Construit et applique les objets d'un serveur de jeu."""

    id_label = "server_id"

    def _labels(self, spec: ComputeSpec, name: str) -> Dict[str, str]:
        return create_minikura_labels(name, spec.kind.value, "server-id", spec.id)

    def build_config_map(self, spec: ComputeSpec) -> Dict[str, Any]:
        name = compute_resource_name(spec.id)
        return {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {
                "name": config_map_name(name),
                "namespace": self.namespace,
                "labels": self._labels(spec, name),
            },
            "data": {
                "server-type": spec.kind.value,
                "server-id": spec.id,
                "description": spec.description or "",
                "minikura-api-key": spec.access_token,
            },
        }

    def build_service(self, spec: ComputeSpec) -> Dict[str, Any]:
        name = compute_resource_name(spec.id)
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
                        "port": spec.listen_port,
                        "targetPort": GAME_PORT,
                        "protocol": "TCP",
                        "name": "minecraft",
                    }
                ],
                "type": map_service_type(spec.service_type, "ClusterIP"),
            },
        }

    def _container(self, spec: ComputeSpec, name: str) -> Dict[str, Any]:
        stateful = spec.kind == ComputeKind.STATEFUL
        builtins = [
            {"name": "EULA", "value": "TRUE"},
            {"name": "TYPE", "value": "VANILLA"},
            self._heap_env(spec.memory, settings.DEFAULT_SERVER_MEMORY),
            {"name": "OPS", "value": ""},
            {"name": "OVERRIDE_SERVER_PROPERTIES", "value": "true"},
            {"name": "ENABLE_RCON", "value": "false"},
            self._api_key_env(config_map_name(name)),
        ]
        mounts = [{"name": "config", "mountPath": "/config"}]
        if stateful:
            mounts.insert(0, {"name": "data", "mountPath": "/data"})
        return {
            "name": "minecraft",
            "image": settings.SERVER_IMAGE,
            "ports": [{"containerPort": GAME_PORT, "name": "minecraft"}],
            "env": self._container_env(builtins, spec.env_vars),
            "volumeMounts": mounts,
            "readinessProbe": {
                "tcpSocket": {"port": GAME_PORT},
                "initialDelaySeconds": 60 if stateful else 30,
                "periodSeconds": 10,
            },
            "resources": self._resources(spec.memory, settings.DEFAULT_SERVER_MEMORY),
        }

    def build_workload(self, spec: ComputeSpec) -> Dict[str, Any]:
        name = compute_resource_name(spec.id)
        labels = self._labels(spec, name)
        pod_spec = {
            "containers": [self._container(spec, name)],
            "volumes": [{"name": "config", "configMap": {"name": config_map_name(name)}}],
        }
        workload_spec: Dict[str, Any] = {
            "replicas": 1,
            "selector": {"matchLabels": {"app": name}},
            "template": {"metadata": {"labels": labels}, "spec": pod_spec},
        }

        if spec.kind == ComputeKind.STATEFUL:
            workload_spec["serviceName"] = name
            workload_spec["volumeClaimTemplates"] = [
                {
                    "metadata": {"name": "data"},
                    "spec": {
                        "accessModes": ["ReadWriteOnce"],
                        "resources": {"requests": {"storage": settings.STORAGE_SIZE}},
                    },
                }
            ]
            kind = "StatefulSet"
        else:
            kind = "Deployment"

        return {
            "apiVersion": "apps/v1",
            "kind": kind,
            "metadata": {"name": name, "namespace": self.namespace, "labels": labels},
            "spec": workload_spec,
        }

    def build_manifests(self, spec: ComputeSpec) -> List[Dict[str, Any]]:
        return [self.build_config_map(spec), self.build_service(spec), self.build_workload(spec)]

    def apply(self, spec: ComputeSpec, previous: Optional[ComputeSpec] = None) -> None:
        """
        Applique ConfigMap, Service et charge de travail puis supprime l'autre saveur.

        La suppression est systématique (404 ignoré) : après un redémarrage le cache
        est vide et `previous` ne dit plus si le type a changé.
        """
        for manifest in self.build_manifests(spec):
            self._create_or_replace(manifest, spec.id)

        stale = "Deployment" if spec.kind == ComputeKind.STATEFUL else "StatefulSet"
        if previous is not None and previous.kind != spec.kind:
            logger.info(
                "workload_kind_changed",
                extra={
                    "extra_fields": {
                        "server_id": spec.id,
                        "from": previous.kind.value,
                        "to": spec.kind.value,
                    }
                },
            )
        self._delete_ignoring_missing(stale, compute_resource_name(spec.id), spec.id)

    def remove(self, server_id: str) -> None:
        name = compute_resource_name(server_id)
        # les deux saveurs : le type a pu changer depuis le dernier apply
        self._delete_ignoring_missing("Deployment", name, server_id)
        self._delete_ignoring_missing("StatefulSet", name, server_id)
        self._delete_ignoring_missing("Service", name, server_id)
        self._delete_ignoring_missing("ConfigMap", config_map_name(name), server_id)
