"""Kubernetes access for PodReaper."""

from podreaper.cluster.client import ClusterClient, ClusterSnapshot
from podreaper.cluster.remover import PodRemover, RemovalMode

__all__ = ["ClusterClient", "ClusterSnapshot", "PodRemover", "RemovalMode"]
