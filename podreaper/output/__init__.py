"""Output generation for PodReaper results."""

from podreaper.output.generator import ReportGenerator

__all__ = ["ReportGenerator"]
