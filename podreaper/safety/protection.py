"""Protection rules for pods that must never be disrupted."""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Tuple

from podreaper.safety.models import Pod

DEFAULT_PROTECTED_OWNER_KINDS = frozenset({"DaemonSet"})
DEFAULT_PROTECTED_NAMESPACES = frozenset({"kube-system", "kube-public", "kube-node-lease"})

REASON_DAEMON_MANAGED = "daemon-managed"
REASON_SYSTEM_NAMESPACE = "system-namespace"


@dataclass(frozen=True)
class ProtectionPolicy:
    """Owner kinds and namespaces that are off limits."""

    owner_kinds: FrozenSet[str] = field(default=DEFAULT_PROTECTED_OWNER_KINDS)
    namespaces: FrozenSet[str] = field(default=DEFAULT_PROTECTED_NAMESPACES)

    @classmethod
    def from_lists(
        cls,
        owner_kinds: Optional[Iterable[str]] = None,
        namespaces: Optional[Iterable[str]] = None,
    ) -> "ProtectionPolicy":
        """Build a policy, falling back to the defaults for omitted sets."""
        return cls(
            owner_kinds=frozenset(owner_kinds) if owner_kinds is not None else DEFAULT_PROTECTED_OWNER_KINDS,
            namespaces=frozenset(namespaces) if namespaces is not None else DEFAULT_PROTECTED_NAMESPACES,
        )


def is_protected(pod: Pod, policy: Optional[ProtectionPolicy] = None) -> Tuple[bool, str]:
    """Check whether a pod is untouchable regardless of budgets.

    Rules are applied in order and the first match wins: an owner of a
    protected kind (daemon-managed), then a protected namespace.

    Args:
        pod: The pod to classify.
        policy: Protection sets; defaults to ProtectionPolicy().

    Returns:
        (protected, reason). The reason starts with the rule name and is
        empty when the pod is not protected.
    """
    policy = policy or ProtectionPolicy()

    for owner in pod.owner_references:
        if owner.kind in policy.owner_kinds:
            return True, f"{REASON_DAEMON_MANAGED}: owned by {owner.kind}/{owner.name}"

    if pod.namespace in policy.namespaces:
        return True, f"{REASON_SYSTEM_NAMESPACE}: namespace {pod.namespace} is reserved"

    return False, ""
