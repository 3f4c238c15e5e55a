"""Socle commun des constructeurs de manifestes (create-or-replace, suppression tolérante)."""
import copy
import logging
from typing import Any, Callable, Dict, List, Optional

from kubernetes.client.exceptions import ApiException

from ..config import settings
from ..k8s_utils import calculate_heap_memory, is_conflict, is_not_found, to_k8s_quantity
from ..schemas import EnvVar

logger = logging.getLogger("minikura.manifests")

# kind -> (attribut d'API, suffixe des verbes du client python)
_KIND_VERBS = {
    "ConfigMap": ("core_v1", "config_map"),
    "Service": ("core_v1", "service"),
    "Deployment": ("apps_v1", "deployment"),
    "StatefulSet": ("apps_v1", "stateful_set"),
}


class ManifestBuilder:
    """
    Applique des manifestes de façon idempotente dans un namespace.
    Les sous-classes construisent les objets d'une entité et exposent apply()/remove().
    """

    id_label = "entity-id"

    def __init__(self, cluster: Any, namespace: Optional[str] = None):
        self.core_v1 = cluster.core_v1
        self.apps_v1 = cluster.apps_v1
        self.namespace = namespace or settings.NAMESPACE

    def _verb(self, kind: str, verb: str) -> Callable[..., Any]:
        api_attr, suffix = _KIND_VERBS[kind]
        return getattr(getattr(self, api_attr), f"{verb}_namespaced_{suffix}")

    def _create_or_replace(self, manifest: Dict[str, Any], entity_id: str) -> bool:
        """
        Crée l'objet; s'il existe déjà (409), relit l'objet vivant et le remplace.
        Retourne True si l'objet a été créé, False s'il a été remplacé.
        """
        kind = manifest["kind"]
        name = manifest["metadata"]["name"]
        try:
            self._verb(kind, "create")(self.namespace, manifest)
            logger.info(
                "resource_created",
                extra={"extra_fields": {"kind": kind, "name": name, self.id_label: entity_id}},
            )
            return True
        except ApiException as exc:
            if not is_conflict(exc):
                raise

        live = self._verb(kind, "read")(name, self.namespace)
        body = copy.deepcopy(manifest)
        body["metadata"]["resourceVersion"] = live.metadata.resource_version
        if kind == "Service":
            # clusterIP est immuable : le replace doit reprendre la valeur allouée
            cluster_ip = getattr(live.spec, "cluster_ip", None)
            if cluster_ip:
                body["spec"]["clusterIP"] = cluster_ip
        self._verb(kind, "replace")(name, self.namespace, body)
        logger.info(
            "resource_replaced",
            extra={"extra_fields": {"kind": kind, "name": name, self.id_label: entity_id}},
        )
        return False

    def _delete_ignoring_missing(self, kind: str, name: str, entity_id: str) -> bool:
        """Suppression best-effort : 404 = déjà absent, autre erreur journalisée sans interrompre."""
        try:
            self._verb(kind, "delete")(name, self.namespace)
        except ApiException as exc:
            if is_not_found(exc):
                return False
            logger.error(
                "resource_delete_failed",
                extra={
                    "extra_fields": {
                        "kind": kind,
                        "name": name,
                        self.id_label: entity_id,
                        "status": exc.status,
                        "error": exc.reason,
                    }
                },
            )
            return False
        except Exception as exc:
            logger.error(
                "resource_delete_failed",
                extra={"extra_fields": {"kind": kind, "name": name, self.id_label: entity_id, "error": str(exc)}},
            )
            return False
        logger.info(
            "resource_deleted",
            extra={"extra_fields": {"kind": kind, "name": name, self.id_label: entity_id}},
        )
        return True

    @staticmethod
    def _container_env(builtins: List[Dict[str, Any]], env_vars: List[EnvVar]) -> List[Dict[str, Any]]:
        """Variables intégrées puis variables de l'entité; une clé de l'entité remplace l'intégrée."""
        env = [dict(entry) for entry in builtins]
        index = {entry["name"]: pos for pos, entry in enumerate(env)}
        for ev in env_vars:
            entry = {"name": ev.key, "value": ev.value}
            if ev.key in index:
                env[index[ev.key]] = entry
            else:
                index[ev.key] = len(env)
                env.append(entry)
        return env

    @staticmethod
    def _heap_env(memory: Optional[str], default: str) -> Dict[str, str]:
        return {"name": "MEMORY", "value": calculate_heap_memory(memory, default)}

    @staticmethod
    def _resources(memory: Optional[str], default: str) -> Dict[str, Dict[str, str]]:
        quantity = to_k8s_quantity(memory, default)
        return {
            "requests": {"memory": quantity, "cpu": settings.CPU_REQUEST},
            "limits": {"memory": quantity, "cpu": settings.CPU_LIMIT},
        }

    @staticmethod
    def _api_key_env(config_map: str) -> Dict[str, Any]:
        return {
            "name": "MINIKURA_API_KEY",
            "valueFrom": {"configMapKeyRef": {"name": config_map, "key": "minikura-api-key"}},
        }
