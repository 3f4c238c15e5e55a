"""Tests for operator wiring and the cluster client provider."""
import asyncio

import kubernetes.config as k8s_config
import pytest
from kubernetes.config.config_exception import ConfigException

from minikura.k8s_client import ClusterClient
from minikura.schemas import ComputeSpec
from minikura.runtime import Operator


def test_operator_without_reflection(mock_cluster):
    operator = Operator(cluster=mock_cluster, namespace="games", enable_reflection=False)
    assert operator.reflector is None
    assert operator.compute_controller.builder.namespace == "games"
    assert operator.status().reflector is None


async def test_operator_start_and_stop(mock_cluster, monkeypatch):
    # loaders stubbed: the three loops would otherwise share one SQLite connection across threads
    monkeypatch.setattr("minikura.runtime.load_compute_specs", lambda: [ComputeSpec(id="lobby-1", access_token="key")])
    monkeypatch.setattr("minikura.runtime.load_proxy_specs", lambda: [])

    operator = Operator(cluster=mock_cluster, enable_reflection=True)
    operator.start()
    for _ in range(500):
        if operator.compute_controller.last_cycle and operator.reflector.last_cycle:
            break
        await asyncio.sleep(0.01)
    await operator.stop()

    status = operator.status()
    assert all(c.state == "stopped" for c in status.controllers)
    assert operator.compute_controller.cache.keys() == {"lobby-1"}
    mock_cluster.apps_v1.create_namespaced_deployment.assert_called_once()
    assert mock_cluster.api_extensions.create_custom_resource_definition.call_count == 2
    assert status.reflector.reflected == {"minecraftservers": 1, "reverseproxyservers": 0}
    mock_cluster.close.assert_called_once()


def test_cluster_client_falls_back_to_in_cluster(monkeypatch):
    calls = []

    def no_kubeconfig(**kwargs):
        calls.append("kubeconfig")
        raise ConfigException("no kubeconfig")

    monkeypatch.setattr(k8s_config, "load_kube_config", no_kubeconfig)
    monkeypatch.setattr(k8s_config, "load_incluster_config", lambda: calls.append("in_cluster"))

    cluster = ClusterClient()
    try:
        assert calls == ["kubeconfig", "in_cluster"]
        assert cluster.core_v1.api_client is cluster.api_client
        assert cluster.custom_objects.api_client is cluster.api_client
    finally:
        cluster.close()


def test_cluster_client_without_configuration(monkeypatch):
    def unavailable(**kwargs):
        raise ConfigException("unavailable")

    monkeypatch.setattr(k8s_config, "load_kube_config", unavailable)
    monkeypatch.setattr(k8s_config, "load_incluster_config", unavailable)

    with pytest.raises(ConfigException):
        ClusterClient()
