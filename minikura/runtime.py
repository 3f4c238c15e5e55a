"""
Assemblage de l'opérateur : client cluster, constructeurs, contrôleurs et réflecteur.
Le client cluster est construit une fois ici puis passé explicitement à chaque composant.
"""
import logging
from typing import Any, List, Optional

from .config import settings
from .repository import load_compute_specs, load_proxy_specs
from .schemas import OperatorStatus
from .services import ComputeManifestBuilder, ProxyManifestBuilder
from .tasks import BaseController, ComputeController, CRDReflector, ProxyController

logger = logging.getLogger("minikura.runtime")


class Operator:
    def __init__(
        self,
        cluster: Any = None,
        namespace: Optional[str] = None,
        enable_reflection: Optional[bool] = None,
    ):
        if cluster is None:
            from .k8s_client import ClusterClient

            cluster = ClusterClient()
        self.cluster = cluster
        self.namespace = namespace or settings.NAMESPACE
        self.enable_reflection = (
            settings.ENABLE_CRD_REFLECTION if enable_reflection is None else enable_reflection
        )

        self.compute_controller = ComputeController(
            ComputeManifestBuilder(cluster, self.namespace), load_compute_specs
        )
        self.proxy_controller = ProxyController(
            ProxyManifestBuilder(cluster, self.namespace), load_proxy_specs
        )
        self.reflector: Optional[CRDReflector] = None
        if self.enable_reflection:
            self.reflector = CRDReflector(
                cluster, load_compute_specs, load_proxy_specs, namespace=self.namespace
            )

    @property
    def controllers(self) -> List[BaseController]:
        return [self.compute_controller, self.proxy_controller]

    def start(self) -> None:
        logger.info(
            "operator_starting",
            extra={
                "extra_fields": {
                    "namespace": self.namespace,
                    "crd_reflection": self.enable_reflection,
                    "sync_interval_seconds": self.compute_controller.interval_seconds,
                }
            },
        )
        for controller in self.controllers:
            controller.start()
        if self.reflector is not None:
            self.reflector.start()
        else:
            logger.info("crd_reflection_disabled")

    async def stop(self) -> None:
        for controller in self.controllers:
            await controller.stop()
        if self.reflector is not None:
            await self.reflector.stop()
        close = getattr(self.cluster, "close", None)
        if callable(close):
            close()
        logger.info("operator_stopped")

    def status(self) -> OperatorStatus:
        return OperatorStatus(
            version=settings.API_VERSION,
            namespace=self.namespace,
            crd_reflection=self.enable_reflection,
            controllers=[controller.snapshot() for controller in self.controllers],
            reflector=self.reflector.snapshot() if self.reflector is not None else None,
        )
