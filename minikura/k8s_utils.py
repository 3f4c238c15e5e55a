"""
Utilitaires Kubernetes - conversions d'unités, nommage et gestion des erreurs d'API
Fonctions pures, sans effet de bord (hors retry_with_backoff qui attend)
"""
import logging
import math
import re
import time
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

from kubernetes.client.exceptions import ApiException

from .config import settings

logger = logging.getLogger("minikura.k8s")

T = TypeVar("T")

REDACTED = "[REDACTED]"
MANAGED_BY = "minikura"

_MEMORY_RE = re.compile(r"^([0-9]+)([MG])$", re.IGNORECASE)

# Modes d'exposition acceptés (noms de la base et alias lisibles)
_SERVICE_TYPES = {
    "CLUSTER_IP": "ClusterIP",
    "INTERNAL_ONLY": "ClusterIP",
    "NODE_PORT": "NodePort",
    "NODE_EXPOSED": "NodePort",
    "LOAD_BALANCER": "LoadBalancer",
    "LOAD_BALANCED": "LoadBalancer",
}


# ============= Conversions d'unités =============

def parse_memory_budget(memory: Optional[str], default: str) -> Tuple[int, str]:
    """
    Découpe un budget mémoire ("512M", "2g") en (valeur, unité M|G).
    Un budget illisible retombe sur `default` plutôt que de bloquer l'entité.
    """
    match = _MEMORY_RE.match((memory or "").strip())
    if not match:
        if memory:
            logger.warning(
                "memory_budget_unparseable",
                extra={"extra_fields": {"memory": memory, "fallback": default}},
            )
        match = _MEMORY_RE.match(default)
        if not match:
            raise ValueError(f"Budget mémoire par défaut invalide: {default}")
    return int(match.group(1)), match.group(2).upper()


def calculate_heap_memory(
    memory: Optional[str],
    default: str = settings.DEFAULT_SERVER_MEMORY,
    factor: float = settings.JAVA_MEMORY_FACTOR,
) -> str:
    """
    Calcule la valeur MEMORY de la JVM (fraction du budget, en mégaoctets entiers).
    Ex: "2G" -> "1638M", "512M" -> "410M"
    """
    value, unit = parse_memory_budget(memory, default)
    megabytes = value * 1024 if unit == "G" else value
    # arrondi au plus proche, demi vers le haut
    return f"{math.floor(megabytes * factor + 0.5)}M"


def to_k8s_quantity(memory: Optional[str], default: str = settings.DEFAULT_SERVER_MEMORY) -> str:
    """Convertit un budget mémoire en quantité Kubernetes ("1G" -> "1Gi", "512M" -> "512Mi")."""
    value, unit = parse_memory_budget(memory, default)
    return f"{value}Gi" if unit == "G" else f"{value}Mi"


def map_service_type(service_type: Any, default: str = "ClusterIP") -> str:
    """
    Traduit un mode d'exposition en type de Service natif.
    Valeur absente -> `default`; valeur inconnue -> ClusterIP.
    """
    if service_type is None or service_type == "":
        return default
    key = str(getattr(service_type, "value", service_type)).strip().upper().replace("-", "_")
    return _SERVICE_TYPES.get(key, "ClusterIP")


# ============= Nommage et labels =============

def compute_resource_name(server_id: str) -> str:
    return f"{settings.COMPUTE_NAME_PREFIX}-{server_id}"


def proxy_resource_name(proxy_kind: Any, proxy_id: str) -> str:
    kind = str(getattr(proxy_kind, "value", proxy_kind)).lower()
    return f"{kind}-{proxy_id}"


def config_map_name(resource_name: str) -> str:
    return f"{resource_name}-config"


def label_key(name: str) -> str:
    return f"{settings.LABEL_PREFIX}/{name}"


def create_minikura_labels(
    app_name: str,
    server_type: str,
    id_label: str,
    entity_id: str,
) -> Dict[str, str]:
    """Labels standards posés sur tous les objets dérivés d'une entité."""
    return {
        "app": app_name,
        "managed-by": MANAGED_BY,
        label_key("server-type"): server_type.lower(),
        label_key(id_label): entity_id,
    }


# ============= Erreurs d'API =============

def is_conflict(exc: BaseException) -> bool:
    return isinstance(exc, ApiException) and exc.status == 409


def is_not_found(exc: BaseException) -> bool:
    return isinstance(exc, ApiException) and exc.status == 404


def _is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, ApiException):
        return False
    if exc.status == 429:
        return True
    body = exc.body or ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return "storage is (re)initializing" in body


def _retry_after_seconds(exc: ApiException) -> Optional[float]:
    headers = getattr(exc, "headers", None) or {}
    raw = headers.get("retry-after") or headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(int(raw))
    except (TypeError, ValueError):
        return None


def retry_with_backoff(
    operation: Callable[[], T],
    operation_name: str = "operation",
    max_retries: int = 5,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Réessaie `operation` sur 429 ou stockage en réinitialisation, avec backoff exponentiel.
    Toute autre erreur est propagée immédiatement.
    """
    attempt = 0
    while True:
        try:
            return operation()
        except ApiException as exc:
            if not _is_retryable(exc):
                raise
            if attempt >= max_retries:
                logger.error(
                    "operation_retries_exhausted",
                    extra={"extra_fields": {"operation": operation_name, "max_retries": max_retries}},
                )
                raise
            delay = _retry_after_seconds(exc)
            if delay is None:
                delay = initial_delay * (2 ** attempt)
            delay = min(delay, max_delay)
            attempt += 1
            logger.warning(
                "operation_retry_scheduled",
                extra={
                    "extra_fields": {
                        "operation": operation_name,
                        "attempt": attempt,
                        "max_attempts": max_retries + 1,
                        "delay_seconds": delay,
                        "status": exc.status,
                    }
                },
            )
            sleep(delay)
