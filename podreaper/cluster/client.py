"""Kubernetes snapshot source.

Reads pods and PodDisruptionBudgets for one namespace and converts them into
the snapshot model used by the safety engine.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from podreaper.errors import SnapshotError
from podreaper.safety.models import (
    DisruptionBudget,
    OwnerReference,
    Pod,
    PodCondition,
    PodPhase,
)

USER_AGENT = "podreaper"


@dataclass
class ClusterSnapshot:
    """Pods and budgets of one namespace at one point in time."""

    namespace: str
    pods: List[Pod] = field(default_factory=list)
    budgets: List[DisruptionBudget] = field(default_factory=list)


def load_api_client() -> client.ApiClient:
    """Build an API client from in-cluster config, falling back to kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    api_client = client.ApiClient()
    api_client.user_agent = USER_AGENT
    return api_client


class ClusterClient:
    """Lists pods and budgets in a namespace."""

    def __init__(
        self,
        namespace: str,
        timeout: int = 10,
        core_api: Optional[client.CoreV1Api] = None,
        policy_api: Optional[client.PolicyV1Api] = None,
    ):
        """Initialize the client.

        Args:
            namespace: Namespace to read.
            timeout: Per-request deadline in seconds.
            core_api: Preconfigured CoreV1Api (loads cluster config if None).
            policy_api: Preconfigured PolicyV1Api (loads cluster config if None).
        """
        self.namespace = namespace
        self.timeout = timeout

        if core_api is None or policy_api is None:
            api_client = load_api_client()
            core_api = core_api or client.CoreV1Api(api_client)
            policy_api = policy_api or client.PolicyV1Api(api_client)

        self.core_api = core_api
        self.policy_api = policy_api

    def list_pods(self, label_selector: str = "") -> List[Pod]:
        """List pods in the namespace.

        Raises:
            SnapshotError: If the API call fails.
        """
        try:
            resp = self.core_api.list_namespaced_pod(
                self.namespace,
                label_selector=label_selector,
                _request_timeout=self.timeout,
            )
        except ApiException as e:
            raise SnapshotError(
                f"failed to list pods in namespace {self.namespace}: {e.reason}"
            ) from e
        return [pod_from_k8s(p) for p in resp.items]

    def list_budgets(self) -> List[DisruptionBudget]:
        """List PodDisruptionBudgets in the namespace.

        Raises:
            SnapshotError: If the API call fails. Selection never proceeds
                without budget information.
        """
        try:
            resp = self.policy_api.list_namespaced_pod_disruption_budget(
                self.namespace,
                _request_timeout=self.timeout,
            )
        except ApiException as e:
            raise SnapshotError(
                f"failed to list PodDisruptionBudgets in namespace {self.namespace}: {e.reason}"
            ) from e
        return [budget_from_k8s(b) for b in resp.items]

    def snapshot(self) -> ClusterSnapshot:
        """Read every pod and budget in the namespace."""
        pods = self.list_pods()
        budgets = self.list_budgets()
        return ClusterSnapshot(namespace=self.namespace, pods=pods, budgets=budgets)


def pod_from_k8s(pod: Any) -> Pod:
    """Convert a V1Pod into a Pod."""
    metadata = pod.metadata
    status = pod.status

    if metadata.deletion_timestamp is not None:
        phase = PodPhase.TERMINATING
    else:
        phase = PodPhase.parse(status.phase if status else None)

    owners = [
        OwnerReference(kind=ref.kind, name=ref.name)
        for ref in metadata.owner_references or []
    ]
    conditions = [
        PodCondition(type=cond.type, status=cond.status)
        for cond in (status.conditions if status else None) or []
    ]

    return Pod(
        name=metadata.name,
        namespace=metadata.namespace,
        phase=phase,
        labels=dict(metadata.labels or {}),
        owner_references=owners,
        conditions=conditions,
    )


def budget_from_k8s(pdb: Any) -> DisruptionBudget:
    """Convert a V1PodDisruptionBudget into a DisruptionBudget."""
    spec = pdb.spec
    return DisruptionBudget(
        name=pdb.metadata.name,
        namespace=pdb.metadata.namespace,
        selector=_label_selector_to_dict(spec.selector if spec else None),
        min_available=spec.min_available if spec else None,
        max_unavailable=spec.max_unavailable if spec else None,
    )


def _label_selector_to_dict(selector: Any) -> Optional[Dict[str, Any]]:
    """Convert a V1LabelSelector into the structured mapping form."""
    if selector is None:
        return None

    result: Dict[str, Any] = {}
    if selector.match_labels:
        result["matchLabels"] = dict(selector.match_labels)
    if selector.match_expressions:
        result["matchExpressions"] = [
            {
                "key": expr.key,
                "operator": expr.operator,
                "values": list(expr.values or []),
            }
            for expr in selector.match_expressions
        ]
    return result
