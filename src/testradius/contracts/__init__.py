from .blast_radius import (
    AnalysisDiagnostics,
    BlastRadius,
    DirectReferenceView,
    ImpactedTest,
    IndirectReferenceView,
    RiskLevel,
    SequentialReferenceView,
)

__all__ = [
    "AnalysisDiagnostics",
    "BlastRadius",
    "DirectReferenceView",
    "ImpactedTest",
    "IndirectReferenceView",
    "RiskLevel",
    "SequentialReferenceView",
]
