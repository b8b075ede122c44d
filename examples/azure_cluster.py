"""
Azure configuration store + AKS cluster + namespace, wired with deferred values.

The cloud calls are injected, so the same program runs against real SDK
wrappers or the in-memory fake below:

    python examples/azure_cluster.py
"""

import base64
from typing import Any

from strata import OrchestrationContext, configure_logging, load_config

RESOURCE_GROUP = "mspulumi"


def stack(ctx: OrchestrationContext, cloud: Any) -> None:
    """
    Deploys:
    - Azure Configuration Store
    - Azure Kubernetes Service cluster
    - Kubernetes namespace inside the cluster
    """
    config_store = ctx.provision(
        "config-store-1",
        cloud.create_configuration_store,
        {"sku": "standard", "resource_group": RESOURCE_GROUP},
    )

    cluster = ctx.provision(
        "cluster-1",
        cloud.create_managed_cluster,
        {
            "resource_group": RESOURCE_GROUP,
            "dns_prefix": "pulumi-demo-1",
            "identity": "SystemAssigned",
            "agent_pool": {
                "name": "pool1",
                "count": 1,
                "os_type": "Linux",
                "vm_size": "standard_a2_v2",
                "mode": "System",
            },
        },
    )

    kubeconfig = get_kubeconfig(cluster, cloud)

    provider = ctx.provision(
        "k8sProvider",
        cloud.create_kubernetes_provider,
        {"kubeconfig": kubeconfig},
    )

    namespace = ctx.provision(
        "dev-ns",
        cloud.create_namespace,
        {"provider": provider, "metadata": {"name": "apps-namespace"}},
    )

    connection_string = config_store.output("name").transform(
        lambda name: cloud.list_configuration_store_keys(name, RESOURCE_GROUP)[0]["connection_string"],
        name="configStoreConnectionString",
    )

    ctx.export("configStoreConnectionString", connection_string.mark_secret())
    ctx.export("kubeconfig", kubeconfig)
    ctx.export("namespace", namespace.output("id"))


def get_kubeconfig(cluster, cloud):
    """Cluster name -> user credentials -> decoded kubeconfig (secret)."""
    credentials = cluster.output("name").transform(
        lambda name: cloud.list_cluster_user_credentials(name, RESOURCE_GROUP),
        name="clusterCredentials",
    )
    return (
        credentials.transform(lambda creds: creds["kubeconfigs"][0]["value"], name="kubeconfigB64")
        .transform(base64.b64decode, name="kubeconfigBytes")
        .transform(lambda data: data.decode("utf-8"), name="kubeconfig")
        .mark_secret()
    )


class InMemoryCloud:
    """Records provisioning calls instead of talking to Azure."""

    def __init__(self):
        self.calls: list[tuple[str, dict]] = []

    def _record(self, call: str, **kwargs) -> None:
        self.calls.append((call, kwargs))

    def create_configuration_store(self, sku, resource_group):
        self._record("create_configuration_store", sku=sku, resource_group=resource_group)
        return {"name": "configstore1a2b", "id": f"/rg/{resource_group}/stores/configstore1a2b"}

    def create_managed_cluster(self, resource_group, dns_prefix, identity, agent_pool):
        self._record("create_managed_cluster", resource_group=resource_group, dns_prefix=dns_prefix)
        return {"name": "cluster-1c3d", "fqdn": f"{dns_prefix}.hcp.azmk8s.io"}

    def list_cluster_user_credentials(self, name, resource_group):
        self._record("list_cluster_user_credentials", name=name)
        config = f"apiVersion: v1\nclusters:\n- name: {name}\n"
        return {"kubeconfigs": [{"value": base64.b64encode(config.encode("utf-8")).decode("ascii")}]}

    def list_configuration_store_keys(self, name, resource_group):
        self._record("list_configuration_store_keys", name=name)
        return [{"connection_string": f"Endpoint=https://{name}.azconfig.io;Id=abc;Secret=s3cr3t"}]

    def create_kubernetes_provider(self, kubeconfig):
        self._record("create_kubernetes_provider")
        return {"kubeconfig": kubeconfig}

    def create_namespace(self, provider, metadata):
        self._record("create_namespace", name=metadata["name"])
        return {"id": metadata["name"]}


if __name__ == "__main__":
    config = load_config()
    configure_logging(config.log_level, config.log_format, config.redaction_placeholder)

    with OrchestrationContext("infra-dev", config=config) as ctx:
        stack(ctx, InMemoryCloud())

    print(ctx.run().render())
