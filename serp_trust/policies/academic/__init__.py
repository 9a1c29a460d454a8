"""ACADEMIC scoring policy."""

from serp_trust.policies.academic.policy import AcademicPolicy, AcademicSignals

__all__ = ["AcademicPolicy", "AcademicSignals"]
