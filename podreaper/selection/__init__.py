"""Candidate selection for PodReaper."""

from podreaper.selection.candidate import CandidateSelector, SelectionResult, select_one

__all__ = ["CandidateSelector", "SelectionResult", "select_one"]
