"""Pod removal: hard delete or graceful eviction."""

from enum import Enum
from typing import Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from podreaper.errors import RemovalError
from podreaper.safety.models import Pod


class RemovalMode(str, Enum):
    """How the chosen pod is removed."""

    DELETE = "delete"
    EVICT = "evict"

    def describe(self) -> str:
        """Human-readable description of the mode."""
        descriptions = {
            self.DELETE: "Delete the pod directly (bypasses the Eviction API).",
            self.EVICT: (
                "Evict the pod through the Eviction API so the API server "
                "re-checks PodDisruptionBudgets before removal."
            ),
        }
        return descriptions[self]


class PodRemover:
    """Removes one pod. Does not retry and does not wait for convergence."""

    def __init__(
        self,
        core_api: client.CoreV1Api,
        timeout: int = 10,
        grace_period: Optional[int] = None,
    ):
        """Initialize the remover.

        Args:
            core_api: CoreV1Api to issue requests with.
            timeout: Per-request deadline in seconds.
            grace_period: Termination grace period override in seconds.
        """
        self.core_api = core_api
        self.timeout = timeout
        self.grace_period = grace_period

    def remove(self, pod: Pod, mode: RemovalMode = RemovalMode.DELETE) -> None:
        """Delete or evict a pod.

        Raises:
            RemovalError: If the API rejects or fails the request. An
                eviction refused by a budget (HTTP 429) is reported the
                same way.
        """
        mode = RemovalMode(mode)
        try:
            if mode == RemovalMode.EVICT:
                self._evict(pod)
            else:
                self._delete(pod)
        except ApiException as e:
            raise RemovalError(
                f"failed to {mode.value} pod {pod.namespace}/{pod.name}: "
                f"{e.status} {e.reason}"
            ) from e

    def _delete(self, pod: Pod) -> None:
        kwargs = {"_request_timeout": self.timeout}
        if self.grace_period is not None:
            kwargs["grace_period_seconds"] = self.grace_period
        self.core_api.delete_namespaced_pod(pod.name, pod.namespace, **kwargs)

    def _evict(self, pod: Pod) -> None:
        delete_options = None
        if self.grace_period is not None:
            delete_options = client.V1DeleteOptions(grace_period_seconds=self.grace_period)
        body = client.V1Eviction(
            metadata=client.V1ObjectMeta(name=pod.name, namespace=pod.namespace),
            delete_options=delete_options,
        )
        self.core_api.create_namespaced_pod_eviction(
            pod.name, pod.namespace, body, _request_timeout=self.timeout
        )
