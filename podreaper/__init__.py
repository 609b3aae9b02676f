"""PodReaper - disruption-aware random pod killer for Kubernetes chaos testing."""

__version__ = "0.1.0"
