"""
Accès au cluster Kubernetes
Un seul objet construit au démarrage puis injecté dans les contrôleurs et le réflecteur
"""
import logging
from typing import Optional

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from .config import settings

logger = logging.getLogger("minikura.k8s")


class ClusterClient:
    """Charge la configuration Kubernetes et expose les API typées utilisées par l'opérateur."""

    def __init__(self, api_client: Optional[client.ApiClient] = None):
        if api_client is None:
            api_client = self._load_api_client()
        self.api_client = api_client
        self.core_v1 = client.CoreV1Api(api_client)
        self.apps_v1 = client.AppsV1Api(api_client)
        self.custom_objects = client.CustomObjectsApi(api_client)
        self.api_extensions = client.ApiextensionsV1Api(api_client)

    @staticmethod
    def _load_api_client() -> client.ApiClient:
        """kubeconfig puis in-cluster (ou l'inverse si K8S_IN_CLUSTER)."""
        loaders = [
            ("kubeconfig", lambda: config.load_kube_config(context=settings.KUBE_CONTEXT)),
            ("in_cluster", config.load_incluster_config),
        ]
        if settings.K8S_IN_CLUSTER:
            loaders.reverse()

        errors = []
        for source, loader in loaders:
            try:
                loader()
            except (ConfigException, OSError) as exc:
                errors.append(f"{source}: {exc}")
                logger.debug(
                    "kube_config_source_unavailable",
                    extra={"extra_fields": {"source": source, "error": str(exc)}},
                )
                continue

            configuration = client.Configuration.get_default_copy()
            if settings.SKIP_TLS_VERIFY:
                logger.warning("kube_tls_verification_disabled")
                configuration.verify_ssl = False
            logger.info(
                "kube_config_loaded",
                extra={"extra_fields": {"source": source, "host": configuration.host}},
            )
            return client.ApiClient(configuration)

        raise ConfigException(
            "Impossible de configurer le client Kubernetes: " + "; ".join(errors)
        )

    def close(self) -> None:
        self.api_client.close()
