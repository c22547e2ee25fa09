"""Pydantic models for the blast-radius output (versioned, stable, explicit)."""

from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

CONTRACT_VERSION = "1.0.0"


class RiskLevel(str, Enum):
    """Risk of a test being affected, decided at query time."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


RISK_ORDER = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}


class DirectReferenceView(BaseModel):
    """A helper declaring or mentioning the entity."""
    id: int = Field(..., description="Direct reference row id")
    entity_name: str
    kind: str = Field(..., description="FULL_DECLARATION or ATTRIBUTE_MENTION")
    block_keyword: Optional[str] = Field(None, description="'resource' or 'data' for declaration blocks")
    file_path: str
    group: str
    helper_name: str
    struct_name: Optional[str] = Field(None, description="Struct the helper is bound to")
    line: int = Field(..., description="Absolute line: helper declaration line plus body offset")
    context: str


class IndirectReferenceView(BaseModel):
    """A test step reaching the entity through helper calls."""
    id: int = Field(..., description="Indirect reference row id")
    test_name: str
    file_path: str = Field(..., description="File of the test function")
    group: str = Field(..., description="Group of the test function")
    step_index: int
    line: int = Field(..., description="Line of the template call")
    expression: str
    kind: str = Field(..., description="SAME_FILE, CROSS_FILE or UNRESOLVED_EXTERNAL")
    helper_name: Optional[str] = Field(None, description="First-hop helper")
    helper_file_path: Optional[str] = None
    source_helper_name: Optional[str] = Field(None, description="Helper shown as the configuration source")
    source_file_path: Optional[str] = None
    risk: RiskLevel


class SequentialReferenceView(BaseModel):
    """Entry point or member of a sequencing map."""
    id: int = Field(..., description="Sequential reference row id")
    kind: str = Field(..., description="SEQUENTIAL_ENTRY or SEQUENTIAL_MEMBER")
    entry_point_name: str
    entry_file_path: str
    group: Optional[str] = Field(None, description="Sequencing group (None on entry rows)")
    key: Optional[str] = None
    declared_index: Optional[int] = None
    line: Optional[int] = None
    test_name: str = Field(..., description="Referenced test function (the entry point itself on entry rows)")
    file_path: str = Field(..., description="File of the referenced test function")
    resolved: bool = Field(..., description="False when the member lies outside the scanned corpus")
    risk: RiskLevel = RiskLevel.MEDIUM


class ImpactedTest(BaseModel):
    """One test that must be re-run."""
    test_name: str
    file_path: str
    group: str
    risk: RiskLevel = Field(..., description="Highest risk over the references reaching this test")
    reference_kinds: List[str] = Field(default_factory=list, description="Reference kinds that reached this test")
    resolved: bool = Field(True, description="False for stubs of out-of-corpus tests")


class AnalysisDiagnostics(BaseModel):
    """Counts surfaced for observability; none of these fail a run."""
    candidate_files: int = 0
    relevant_files: int = 0
    read_failures: int = 0
    skipped_constructs: int = 0
    skipped_sequencing_literals: int = 0
    unbound_template_calls: int = 0
    unresolved_template_calls: int = 0
    stub_tests: int = 0
    workers: int = 1


class BlastRadius(BaseModel):
    """Blast-radius contract - versioned, stable, explicit."""
    version: str = Field(default=CONTRACT_VERSION, description="Output contract version")
    entity_name: str
    owner_group: Optional[str] = Field(None, description="Group owning the entity (None when unknown)")
    direct: List[DirectReferenceView] = Field(default_factory=list)
    indirect: List[IndirectReferenceView] = Field(default_factory=list)
    sequential: List[SequentialReferenceView] = Field(default_factory=list)
    impacted_tests: List[ImpactedTest] = Field(default_factory=list)
    counts: Dict[str, int] = Field(default_factory=dict)
    diagnostics: Optional[AnalysisDiagnostics] = None

    class Config:
        """Pydantic config."""
        use_enum_values = True
