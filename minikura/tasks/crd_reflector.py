"""
Réflexion de la base vers des ressources personnalisées (MinecraftServer, ReverseProxyServer).

Boucle indépendante des contrôleurs : elle ne sert qu'à la visibilité dans le cluster
(kubectl get mcs/rps), jamais de source de vérité. Chaque type est traité séparément
et chaque objet isolément : une erreur est journalisée puis on passe au suivant.
La clé secrète n'est jamais écrite dans le cluster.
"""
import asyncio
import copy
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from kubernetes.client.exceptions import ApiException

from ..config import settings
from ..crds import ALL_CRDS, RESOURCE_TYPES
from ..k8s_utils import REDACTED, is_conflict, is_not_found, label_key, retry_with_backoff
from ..schemas import ComputeSpec, CycleResult, ProxySpec, ReflectorStatus
from .polling import PollingLoop

logger = logging.getLogger("minikura.reflector")


def _env_list(spec) -> List[Dict[str, str]]:
    return [{"key": ev.key, "value": ev.value} for ev in spec.env_vars]


def compute_cr_spec(spec: ComputeSpec) -> Dict[str, Any]:
    return {
        "id": spec.id,
        "description": spec.description,
        "listen_port": spec.listen_port,
        "type": spec.kind.value,
        "memory": spec.memory,
        "service_type": spec.service_type,
        "environmentVariables": _env_list(spec),
    }


def proxy_cr_spec(spec: ProxySpec) -> Dict[str, Any]:
    return {
        "id": spec.id,
        "description": spec.description,
        "external_address": spec.external_address,
        "external_port": spec.external_port,
        "listen_port": spec.listen_port,
        "type": spec.kind.value,
        "memory": spec.memory,
        "service_type": spec.service_type,
        "environmentVariables": _env_list(spec),
    }


class CRDReflector(PollingLoop):
    name = "crd-reflector"

    def __init__(
        self,
        cluster: Any,
        compute_loader: Callable[[], List[ComputeSpec]],
        proxy_loader: Callable[[], List[ProxySpec]],
        namespace: Optional[str] = None,
        interval_seconds: Optional[float] = None,
        settle_seconds: Optional[float] = None,
    ):
        super().__init__(
            interval_seconds if interval_seconds is not None else settings.REFLECTION_INTERVAL_SECONDS,
            logger,
        )
        self.custom_objects = cluster.custom_objects
        self.api_extensions = cluster.api_extensions
        self.namespace = namespace or settings.NAMESPACE
        self.settle_seconds = settings.CRD_SETTLE_SECONDS if settle_seconds is None else settle_seconds
        # type -> (chargeur, constructeur du spec CR)
        self._kinds = {
            "MINECRAFT_SERVER": (compute_loader, compute_cr_spec),
            "REVERSE_PROXY_SERVER": (proxy_loader, proxy_cr_spec),
        }
        # plural -> {internalId: nom de la CR}
        self.reflected: Dict[str, Dict[str, str]] = {
            resource["plural"]: {} for resource in RESOURCE_TYPES.values()
        }

    # ============= Enregistrement des CRD =============

    def register_crds(self) -> None:
        for crd in ALL_CRDS:
            name = crd["metadata"]["name"]
            try:
                self.api_extensions.create_custom_resource_definition(crd)
                logger.info("crd_registered", extra={"extra_fields": {"crd": name}})
            except ApiException as exc:
                if not is_conflict(exc):
                    raise
                logger.debug("crd_already_registered", extra={"extra_fields": {"crd": name}})

    async def _before_first_cycle(self) -> bool:
        try:
            await asyncio.to_thread(self.register_crds)
        except Exception as exc:
            logger.exception(
                "crd_registration_failed",
                extra={"extra_fields": {"error": str(exc)}},
            )
            return False
        if self.settle_seconds > 0:
            await asyncio.sleep(self.settle_seconds)
        return True

    # ============= Cycle =============

    def _custom_object_args(self, plural: str) -> Tuple[str, str, str, str]:
        return settings.API_GROUP, settings.CRD_VERSION, self.namespace, plural

    def _list_existing(self, plural: str) -> Dict[str, Tuple[str, Optional[str]]]:
        """internalId -> (nom, resourceVersion). Un échec de liste vaut liste vide."""
        try:
            response = retry_with_backoff(
                lambda: self.custom_objects.list_namespaced_custom_object(*self._custom_object_args(plural)),
                operation_name=f"list_{plural}",
            )
        except Exception as exc:
            logger.error(
                "custom_resource_list_failed",
                extra={"extra_fields": {"plural": plural, "error": str(exc)}},
            )
            return {}

        existing: Dict[str, Tuple[str, Optional[str]]] = {}
        for item in (response or {}).get("items", []):
            internal_id = (item.get("status") or {}).get("internalId")
            metadata = item.get("metadata") or {}
            if internal_id and metadata.get("name"):
                existing[internal_id] = (metadata["name"], metadata.get("resourceVersion"))
        return existing

    def build_custom_resource(self, resource_type: str, name: str, cr_spec: Dict[str, Any]) -> Dict[str, Any]:
        resource = RESOURCE_TYPES[resource_type]
        synced_at = datetime.now(timezone.utc).isoformat()
        return {
            "apiVersion": f"{settings.API_GROUP}/{settings.CRD_VERSION}",
            "kind": resource["kind"],
            "metadata": {
                "name": name,
                "namespace": self.namespace,
                "annotations": {
                    label_key("database-managed"): "true",
                    label_key("last-synced"): synced_at,
                },
            },
            "spec": cr_spec,
            "status": {
                "phase": "Running",
                "message": "Managed by database",
                "internalId": cr_spec["id"],
                "apiKey": REDACTED,
                "lastSyncedAt": synced_at,
            },
        }

    def _replace(self, plural: str, name: str, body: Dict[str, Any]) -> None:
        # relire juste avant l'écriture : la version listée peut être périmée
        live = self.custom_objects.get_namespaced_custom_object(*self._custom_object_args(plural), name)
        body = copy.deepcopy(body)
        resource_version = ((live or {}).get("metadata") or {}).get("resourceVersion")
        if resource_version:
            body["metadata"]["resourceVersion"] = resource_version
        self.custom_objects.replace_namespaced_custom_object(*self._custom_object_args(plural), name, body)

    def _reflect_kind(self, resource_type: str) -> Tuple[int, int, int, int, Optional[str]]:
        plural = RESOURCE_TYPES[resource_type]["plural"]
        loader, to_cr_spec = self._kinds[resource_type]
        created = updated = deleted = failed = 0

        existing = self._list_existing(plural)
        try:
            specs = loader()
        except Exception as exc:
            logger.exception(
                "reflection_load_failed",
                extra={"extra_fields": {"plural": plural, "error": str(exc)}},
            )
            return 0, 0, 0, 0, str(exc)

        reflected: Dict[str, str] = {}
        for spec in specs:
            existing_name = existing.get(spec.id, (None, None))[0]
            name = existing_name or spec.id.lower()
            body = self.build_custom_resource(resource_type, name, to_cr_spec(spec))
            try:
                if existing_name:
                    self._replace(plural, name, body)
                    updated += 1
                else:
                    try:
                        self.custom_objects.create_namespaced_custom_object(
                            *self._custom_object_args(plural), body
                        )
                        created += 1
                    except ApiException as exc:
                        if not is_conflict(exc):
                            raise
                        # objet du même nom sans internalId connu : on l'adopte
                        self._replace(plural, name, body)
                        updated += 1
                reflected[spec.id] = name
            except Exception as exc:
                failed += 1
                logger.error(
                    "custom_resource_sync_failed",
                    extra={
                        "extra_fields": {
                            "plural": plural,
                            "name": name,
                            "entity_id": spec.id,
                            "status": getattr(exc, "status", None),
                            "error": str(exc),
                        }
                    },
                )

        current_ids = {spec.id for spec in specs}
        for internal_id, (name, _) in existing.items():
            if internal_id in current_ids:
                continue
            try:
                self.custom_objects.delete_namespaced_custom_object(*self._custom_object_args(plural), name)
                deleted += 1
                logger.info(
                    "custom_resource_orphan_deleted",
                    extra={"extra_fields": {"plural": plural, "name": name, "entity_id": internal_id}},
                )
            except Exception as exc:
                if is_not_found(exc):
                    deleted += 1
                    continue
                failed += 1
                logger.error(
                    "custom_resource_delete_failed",
                    extra={
                        "extra_fields": {
                            "plural": plural,
                            "name": name,
                            "entity_id": internal_id,
                            "error": str(exc),
                        }
                    },
                )

        self.reflected[plural] = reflected
        return created, updated, deleted, failed, None

    def run_cycle(self) -> CycleResult:
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        totals = [0, 0, 0, 0]
        errors = []

        for resource_type in RESOURCE_TYPES:
            *counts, error = self._reflect_kind(resource_type)
            totals = [a + b for a, b in zip(totals, counts)]
            if error:
                errors.append(f"{resource_type}: {error}")

        created, updated, deleted, failed = totals
        result = CycleResult(
            started_at=started_at,
            duration_ms=round((time.perf_counter() - start) * 1000, 3),
            succeeded=not errors and failed == 0,
            created=created,
            updated=updated,
            deleted=deleted,
            failed=failed,
            error="; ".join(errors) or None,
        )
        self.last_cycle = result
        logger.info(
            "reflection_cycle_completed",
            extra={"extra_fields": result.model_dump(mode="json")},
        )
        return result

    def snapshot(self) -> ReflectorStatus:
        return ReflectorStatus(
            state=self.state,
            interval_seconds=self.interval_seconds,
            reflected={plural: len(ids) for plural, ids in self.reflected.items()},
            last_cycle=self.last_cycle,
        )
