"""
Détection de dérive entre la dernière spec appliquée et la spec chargée en base.
Évite une écriture cluster (et un redémarrage de pod) à chaque cycle sans changement.
"""
from typing import List, Optional, Sequence, Union

from .schemas import ComputeSpec, EnvVar, ProxySpec

Spec = Union[ComputeSpec, ProxySpec]

# Champs scalaires qui influencent les objets générés
COMPUTE_FIELDS = ("kind", "listen_port", "memory", "description", "service_type", "access_token")
PROXY_FIELDS = (
    "kind",
    "external_address",
    "external_port",
    "listen_port",
    "memory",
    "description",
    "service_type",
    "access_token",
)


def _fields_for(spec: Spec) -> Sequence[str]:
    return PROXY_FIELDS if isinstance(spec, ProxySpec) else COMPUTE_FIELDS


def env_vars_changed(old: Optional[List[EnvVar]], new: Optional[List[EnvVar]]) -> bool:
    old = old or []
    new = new or []
    if len(old) != len(new):
        return True
    previous = {ev.key: ev.value for ev in old}
    for ev in new:
        if ev.key not in previous or previous[ev.key] != ev.value:
            return True
    return False


def changed(old: Spec, new: Spec) -> bool:
    """True si `new` diffère de `old` sur un champ scalaire ou sur les variables d'environnement."""
    if type(old) is not type(new):
        return True
    for field in _fields_for(new):
        if getattr(old, field) != getattr(new, field):
            return True
    return env_vars_changed(old.env_vars, new.env_vars)
