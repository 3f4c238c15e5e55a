"""
Contrôleurs d'entités : un par type (serveurs de jeu, proxys).

Chaque cycle :
  1. charge toutes les specs désirées du type depuis la base;
  2. supprime les objets des entités disparues et les retire du cache;
  3. applique les entités nouvelles ou en dérive, puis met le cache à jour.

Le cache (id -> dernière spec appliquée) est injectable et propre à chaque
contrôleur. Il n'est pas persistant : après un redémarrage toutes les entités
sont réappliquées une fois, ce qui est sans effet grâce au create-or-replace.
Une erreur interrompt le reste du cycle, est journalisée et jamais propagée.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Generic, List, MutableMapping, Optional, TypeVar

from ..change_detector import changed
from ..config import settings
from ..schemas import ComputeSpec, ControllerStatus, CycleResult, ProxySpec
from ..services import ComputeManifestBuilder, ProxyManifestBuilder
from .polling import PollingLoop

SpecT = TypeVar("SpecT", ComputeSpec, ProxySpec)


class BaseController(PollingLoop, Generic[SpecT]):
    name = "controller"
    entity = "entity"

    def __init__(
        self,
        builder,
        loader: Callable[[], List[SpecT]],
        cache: Optional[MutableMapping[str, SpecT]] = None,
        interval_seconds: Optional[float] = None,
    ):
        super().__init__(
            interval_seconds if interval_seconds is not None else settings.SYNC_INTERVAL_SECONDS,
            logging.getLogger(f"minikura.controller.{self.entity}"),
        )
        self.builder = builder
        self.loader = loader
        self.cache: MutableMapping[str, SpecT] = {} if cache is None else cache

    def _apply(self, spec: SpecT, previous: Optional[SpecT]) -> None:
        raise NotImplementedError

    def _remove(self, spec: SpecT) -> None:
        raise NotImplementedError

    def _describe(self, spec: SpecT) -> dict:
        return {"entity_id": spec.id, "kind": spec.kind.value}

    def run_cycle(self) -> CycleResult:
        return self.sync_resources()

    def sync_resources(self) -> CycleResult:
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        created = updated = deleted = 0
        error = None

        try:
            specs = self.loader()
            current_ids = {spec.id for spec in specs}

            for entity_id, cached in list(self.cache.items()):
                if entity_id in current_ids:
                    continue
                self.logger.info(
                    "entity_removed_deleting_resources",
                    extra={"extra_fields": self._describe(cached)},
                )
                self._remove(cached)
                del self.cache[entity_id]
                deleted += 1

            for spec in specs:
                cached = self.cache.get(spec.id)
                if cached is not None and not changed(cached, spec):
                    continue
                action = "create" if cached is None else "update"
                self.logger.info(
                    "entity_applying",
                    extra={"extra_fields": {**self._describe(spec), "action": action, "memory": spec.memory}},
                )
                self._apply(spec, cached)
                # cache mis à jour seulement après un apply réussi
                self.cache[spec.id] = spec.model_copy(deep=True)
                if cached is None:
                    created += 1
                else:
                    updated += 1
        except Exception as exc:
            error = str(exc)
            self.logger.exception(
                "sync_cycle_failed",
                extra={"extra_fields": {"controller": self.name, "error": error}},
            )

        result = CycleResult(
            started_at=started_at,
            duration_ms=round((time.perf_counter() - start) * 1000, 3),
            succeeded=error is None,
            created=created,
            updated=updated,
            deleted=deleted,
            error=error,
        )
        self.last_cycle = result
        self.logger.debug(
            "sync_cycle_completed",
            extra={"extra_fields": {"controller": self.name, **result.model_dump(mode="json")}},
        )
        return result

    def snapshot(self) -> ControllerStatus:
        return ControllerStatus(
            name=self.name,
            state=self.state,
            cached=len(self.cache),
            interval_seconds=self.interval_seconds,
            last_cycle=self.last_cycle,
        )


class ComputeController(BaseController[ComputeSpec]):
    name = "compute-controller"
    entity = "server"

    def __init__(self, builder: ComputeManifestBuilder, loader: Callable[[], List[ComputeSpec]], **kwargs):
        super().__init__(builder, loader, **kwargs)

    def _apply(self, spec: ComputeSpec, previous: Optional[ComputeSpec]) -> None:
        self.builder.apply(spec, previous)

    def _remove(self, spec: ComputeSpec) -> None:
        self.builder.remove(spec.id)


class ProxyController(BaseController[ProxySpec]):
    name = "proxy-controller"
    entity = "proxy"

    def __init__(self, builder: ProxyManifestBuilder, loader: Callable[[], List[ProxySpec]], **kwargs):
        super().__init__(builder, loader, **kwargs)

    def _describe(self, spec: ProxySpec) -> dict:
        return {
            **super()._describe(spec),
            "external_address": spec.external_address,
            "external_port": spec.external_port,
        }

    def _apply(self, spec: ProxySpec, previous: Optional[ProxySpec]) -> None:
        # le builder retire lui-même les objets nommés d'après un autre type
        self.builder.apply(spec)

    def _remove(self, spec: ProxySpec) -> None:
        self.builder.remove(spec.id, spec.kind)
