"""Pydantic models for structural facts extracted from one source file."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from ..store.models import HelperCallKind, ReferenceKind


class StructFact(BaseModel):
    """A `type Name struct` declaration."""
    name: str = Field(..., description="Struct type name")
    line: int = Field(..., description="Declaration line")


class DirectReferenceFact(BaseModel):
    """An entity declared or mentioned inside a helper body."""
    entity_name: str = Field(..., description="Referenced entity, e.g. azurerm_subnet")
    kind: ReferenceKind = Field(..., description="FULL_DECLARATION or ATTRIBUTE_MENTION")
    block_keyword: Optional[str] = Field(None, description="'resource' or 'data' for declaration blocks")
    line_offset: int = Field(..., description="Line offset from the helper declaration line")
    context: str = Field(..., description="Whitespace-normalized source line")


class CallEdgeFact(BaseModel):
    """A call or struct instantiation found in a helper body."""
    kind: HelperCallKind = Field(..., description="CALLS_HELPER or INSTANTIATES_STRUCT")
    target_name: str = Field(..., description="Called method name, or instantiated struct name")
    target_method: Optional[str] = Field(None, description="Method invoked on the instantiated struct")
    line_offset: int = Field(..., description="Line offset from the helper declaration line")
    expression: str = Field(..., description="Matched source text")


class HelperFact(BaseModel):
    """A receiver method returning configuration text."""
    name: str
    line: int
    receiver_var: Optional[str] = Field(None, description="Receiver variable name, e.g. 'r'")
    receiver_type_name: str = Field(..., description="Receiver type name, e.g. 'WidgetResource'")
    body: str
    direct_references: List[DirectReferenceFact] = Field(default_factory=list)
    call_edges: List[CallEdgeFact] = Field(default_factory=list)


class TemplateCallFact(BaseModel):
    """A test step's configuration call, e.g. `Config: r.basic(data)`."""
    step_index: int = Field(..., description="1-based step position within the test")
    receiver_var: Optional[str] = Field(None, description="Variable the method is called on")
    struct_name: Optional[str] = Field(None, description="Struct named by a `Type{}.method()` literal")
    method_name: str
    expression: str = Field(..., description="Whitespace-normalized call expression")
    line: int


class TestFunctionFact(BaseModel):
    """A test function declaration."""
    __test__ = False

    name: str
    line: int
    receiver_var: Optional[str] = None
    receiver_type_name: Optional[str] = None
    body: str
    template_calls: List[TemplateCallFact] = Field(default_factory=list)


class SequentialMappingFact(BaseModel):
    """One group/key/function triple from a sequencing map literal."""
    entry_function: str = Field(..., description="Test function declaring the literal")
    group: str
    key: str
    referenced_name: str
    declared_index: int = Field(..., description="1-based position within the group")
    line: int


class FileFacts(BaseModel):
    """Everything extracted from one file."""
    path: str = Field(..., description="Path relative to the corpus root")
    structs: List[StructFact] = Field(default_factory=list)
    test_functions: List[TestFunctionFact] = Field(default_factory=list)
    helpers: List[HelperFact] = Field(default_factory=list)
    sequential_mappings: List[SequentialMappingFact] = Field(default_factory=list)
    constructor_types: Dict[str, str] = Field(
        default_factory=dict, description="Package-level function name -> struct type it returns"
    )
    skipped_constructs: int = Field(default=0, description="Constructs that could not be extracted")
    skipped_sequencing_literals: int = Field(default=0, description="Sequencing literals outside a test function or unbalanced")
