"""
Définitions des ressources personnalisées reflétant la base dans le cluster
Lecture seule pour l'outillage : la base reste la source de vérité
"""
from typing import Any, Dict

from .config import settings

RESOURCE_TYPES: Dict[str, Dict[str, Any]] = {
    "MINECRAFT_SERVER": {
        "kind": "MinecraftServer",
        "plural": "minecraftservers",
        "singular": "minecraftserver",
        "shortNames": ["mcs"],
    },
    "REVERSE_PROXY_SERVER": {
        "kind": "ReverseProxyServer",
        "plural": "reverseproxyservers",
        "singular": "reverseproxyserver",
        "shortNames": ["rps"],
    },
}

_ENV_VARS_SCHEMA = {
    "type": "array",
    "nullable": True,
    "items": {
        "type": "object",
        "required": ["key", "value"],
        "properties": {
            "key": {"type": "string"},
            "value": {"type": "string"},
        },
    },
}

# Pas de sous-ressource status : le status est écrit avec l'objet et porte internalId
_STATUS_SCHEMA = {
    "type": "object",
    "nullable": True,
    "properties": {
        "phase": {"type": "string", "enum": ["Pending", "Running", "Failed"]},
        "message": {"type": "string", "nullable": True},
        "apiKey": {"type": "string", "nullable": True},
        "internalId": {"type": "string", "nullable": True},
        "lastSyncedAt": {"type": "string", "nullable": True},
    },
}

_PORT = {"type": "integer", "minimum": 1, "maximum": 65535}


def _crd(resource: Dict[str, Any], spec_schema: Dict[str, Any], columns: list) -> Dict[str, Any]:
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{resource['plural']}.{settings.API_GROUP}"},
        "spec": {
            "group": settings.API_GROUP,
            "scope": "Namespaced",
            "names": {
                "kind": resource["kind"],
                "plural": resource["plural"],
                "singular": resource["singular"],
                "shortNames": resource["shortNames"],
            },
            "versions": [
                {
                    "name": settings.CRD_VERSION,
                    "served": True,
                    "storage": True,
                    "schema": {
                        "openAPIV3Schema": {
                            "type": "object",
                            "properties": {"spec": spec_schema, "status": _STATUS_SCHEMA},
                        }
                    },
                    "additionalPrinterColumns": columns
                    + [
                        {"name": "Status", "type": "string", "jsonPath": ".status.phase"},
                        {"name": "Age", "type": "date", "jsonPath": ".metadata.creationTimestamp"},
                    ],
                }
            ],
        },
    }


MINECRAFT_SERVER_CRD = _crd(
    RESOURCE_TYPES["MINECRAFT_SERVER"],
    {
        "type": "object",
        "required": ["id", "type", "listen_port"],
        "properties": {
            "id": {"type": "string", "pattern": "^[a-zA-Z0-9-_]+$"},
            "description": {"type": "string", "nullable": True},
            "listen_port": _PORT,
            "type": {"type": "string", "enum": ["STATEFUL", "STATELESS"]},
            "memory": {"type": "string", "nullable": True},
            "service_type": {"type": "string", "nullable": True},
            "environmentVariables": _ENV_VARS_SCHEMA,
        },
    },
    [{"name": "Type", "type": "string", "jsonPath": ".spec.type"}],
)

REVERSE_PROXY_SERVER_CRD = _crd(
    RESOURCE_TYPES["REVERSE_PROXY_SERVER"],
    {
        "type": "object",
        "required": ["id", "external_address", "external_port"],
        "properties": {
            "id": {"type": "string", "pattern": "^[a-zA-Z0-9-_]+$"},
            "description": {"type": "string", "nullable": True},
            "external_address": {"type": "string"},
            "external_port": _PORT,
            "listen_port": _PORT,
            "type": {"type": "string", "enum": ["VELOCITY", "BUNGEECORD"]},
            "memory": {"type": "string", "nullable": True},
            "service_type": {"type": "string", "nullable": True},
            "environmentVariables": _ENV_VARS_SCHEMA,
        },
    },
    [
        {"name": "Type", "type": "string", "jsonPath": ".spec.type"},
        {"name": "External Address", "type": "string", "jsonPath": ".spec.external_address"},
    ],
)

ALL_CRDS = [MINECRAFT_SERVER_CRD, REVERSE_PROXY_SERVER_CRD]
