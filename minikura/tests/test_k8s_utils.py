"""Tests for unit converters, naming and API retry helpers."""
import pytest

from minikura.k8s_utils import (
    calculate_heap_memory,
    compute_resource_name,
    create_minikura_labels,
    is_conflict,
    is_not_found,
    map_service_type,
    proxy_resource_name,
    retry_with_backoff,
    to_k8s_quantity,
)
from minikura.models import ServiceType
from minikura.schemas import ProxyKind
from minikura.tests.helpers import api_error


# ---------- Memory ----------

def test_heap_is_eighty_percent_in_megabytes():
    assert calculate_heap_memory("2G") == "1638M"
    assert calculate_heap_memory("512M", "512M") == "410M"
    assert calculate_heap_memory("4G") == "3277M"


def test_heap_accepts_lowercase_units():
    assert calculate_heap_memory("1g") == "819M"


def test_unparseable_budget_falls_back_to_default():
    assert calculate_heap_memory("lots", "1G") == "819M"
    assert calculate_heap_memory(None, "512M") == "410M"
    assert to_k8s_quantity("2.5G", "512M") == "512Mi"


def test_only_ascii_digits_form_a_budget():
    assert calculate_heap_memory("２G", "1G") == "819M"
    assert to_k8s_quantity("١٢M", "512M") == "512Mi"


def test_quantity_uses_binary_suffix():
    assert to_k8s_quantity("2G") == "2Gi"
    assert to_k8s_quantity("512m") == "512Mi"


def test_invalid_default_raises():
    with pytest.raises(ValueError):
        calculate_heap_memory("nope", "also-nope")


# ---------- Service types ----------

@pytest.mark.parametrize(
    "value,expected",
    [
        ("CLUSTER_IP", "ClusterIP"),
        ("NODE_PORT", "NodePort"),
        ("LOAD_BALANCER", "LoadBalancer"),
        ("node-exposed", "NodePort"),
        ("internal-only", "ClusterIP"),
        ("Load-Balanced", "LoadBalancer"),
        (ServiceType.NODE_PORT, "NodePort"),
        ("mesh", "ClusterIP"),
    ],
)
def test_map_service_type(value, expected):
    assert map_service_type(value) == expected


def test_missing_service_type_uses_caller_default():
    assert map_service_type(None, "LoadBalancer") == "LoadBalancer"
    assert map_service_type("", "LoadBalancer") == "LoadBalancer"


# ---------- Naming ----------

def test_resource_names_are_deterministic():
    assert compute_resource_name("lobby-1") == "minecraft-lobby-1"
    assert proxy_resource_name(ProxyKind.VELOCITY, "hub") == "velocity-hub"
    assert proxy_resource_name("BUNGEECORD", "hub") == "bungeecord-hub"


def test_labels():
    labels = create_minikura_labels("minecraft-lobby-1", "STATEFUL", "server-id", "lobby-1")
    assert labels["app"] == "minecraft-lobby-1"
    assert labels["managed-by"] == "minikura"
    assert labels["minikura.kirameki.cafe/server-type"] == "stateful"
    assert labels["minikura.kirameki.cafe/server-id"] == "lobby-1"


# ---------- Errors & retry ----------

def test_status_helpers():
    assert is_conflict(api_error(409))
    assert not is_conflict(api_error(404))
    assert is_not_found(api_error(404))
    assert not is_not_found(RuntimeError("404"))


def test_retry_on_too_many_requests():
    delays = []
    calls = {"n": 0}

    def op():
        calls["n"] += 1
        if calls["n"] < 3:
            raise api_error(429)
        return "ok"

    assert retry_with_backoff(op, "list", sleep=delays.append) == "ok"
    assert delays == [1.0, 2.0]


def test_retry_on_storage_initializing():
    delays = []
    errors = [api_error(500, body="storage is (re)initializing")]

    def op():
        if errors:
            raise errors.pop()
        return 42

    assert retry_with_backoff(op, sleep=delays.append) == 42
    assert delays == [1.0]


def test_retry_honours_retry_after_and_cap():
    delays = []
    errors = [api_error(429, headers={"retry-after": "30"}), api_error(429, headers={"Retry-After": "3"})]

    def op():
        if errors:
            raise errors.pop()
        return True

    retry_with_backoff(op, sleep=delays.append)
    assert delays == [3.0, 10.0]


def test_non_retryable_error_propagates_immediately():
    delays = []

    def op():
        raise api_error(500)

    with pytest.raises(Exception) as info:
        retry_with_backoff(op, sleep=delays.append)
    assert info.value.status == 500
    assert delays == []


def test_retries_exhausted():
    delays = []

    def op():
        raise api_error(429)

    with pytest.raises(Exception):
        retry_with_backoff(op, max_retries=2, sleep=delays.append)
    assert delays == [1.0, 2.0]
