"""Pydantic models for the entity store tables."""

from enum import Enum
from typing import Annotated, Dict, Literal, Optional, Union
from pydantic import BaseModel, Field


class ReferenceKind(str, Enum):
    """Reference classification shared by direct, indirect and sequential rows."""
    FULL_DECLARATION = "FULL_DECLARATION"
    ATTRIBUTE_MENTION = "ATTRIBUTE_MENTION"
    SAME_FILE = "SAME_FILE"
    CROSS_FILE = "CROSS_FILE"
    UNRESOLVED_EXTERNAL = "UNRESOLVED_EXTERNAL"
    SEQUENTIAL_ENTRY = "SEQUENTIAL_ENTRY"
    SEQUENTIAL_MEMBER = "SEQUENTIAL_MEMBER"


class HelperCallKind(str, Enum):
    """What a helper body does with a name it references."""
    CALLS_HELPER = "CALLS_HELPER"
    INSTANTIATES_STRUCT = "INSTANTIATES_STRUCT"


class TestFunctionOrigin(str, Enum):
    """Whether a test function was extracted or synthesized for a sequential reference."""
    __test__ = False

    EXTRACTED = "EXTRACTED"
    EXTERNAL_STUB = "EXTERNAL_STUB"


class Group(BaseModel):
    """Service/package boundary owning files."""
    id: int
    name: str = Field(..., description="Group name derived from a path segment")


class SourceFile(BaseModel):
    """A scanned source file."""
    id: int
    path: str = Field(..., description="Path relative to the corpus root")
    group_id: int
    constructor_types: Dict[str, str] = Field(
        default_factory=dict, description="Package-level function name -> struct type it returns"
    )


class Struct(BaseModel):
    """A struct type declaration."""
    id: int
    name: str
    file_id: int
    line: int


class TestFunction(BaseModel):
    """A test function, extracted or synthesized as an external stub."""
    __test__ = False

    id: int
    name: str
    file_id: int
    struct_id: Optional[int] = Field(None, description="Bound struct, filled by the struct resolver")
    line: Optional[int] = Field(None, description="Declaration line (None for stubs)")
    receiver_var: Optional[str] = Field(None, description="Variable bound to the struct, e.g. 'r'")
    receiver_type_name: Optional[str] = Field(None, description="Declared receiver type, when a method")
    entry_point_id: Optional[int] = Field(None, description="Sequential entry point that invokes this test")
    origin: TestFunctionOrigin = TestFunctionOrigin.EXTRACTED
    body: Optional[str] = Field(None, description="Function body text (None for stubs)")

    @property
    def is_stub(self) -> bool:
        return self.origin == TestFunctionOrigin.EXTERNAL_STUB


class HelperFunction(BaseModel):
    """A receiver method returning configuration text (template function)."""
    id: int
    name: str
    file_id: int
    struct_id: Optional[int] = None
    receiver_var: Optional[str] = None
    receiver_type_name: str
    line: int
    body: str


class DirectReference(BaseModel):
    """An entity declared or mentioned in a helper body."""
    id: int
    helper_function_id: int
    entity_name: str
    kind: ReferenceKind
    block_keyword: Optional[str] = None
    line_offset: int = Field(..., description="Offset from the helper's declaration line")
    context: str


class TemplateCallReference(BaseModel):
    """Raw fact: a test step calls `receiver.method(...)` for its configuration."""
    id: int
    test_function_id: int
    step_index: int
    struct_id: Optional[int] = Field(None, description="Struct the call resolves against")
    struct_name: Optional[str] = Field(None, description="Explicit `Type{}` literal name")
    receiver_var: Optional[str] = None
    method_name: str
    expression: str
    line: int


class HelperCallEdge(BaseModel):
    """A helper body calls another helper or instantiates another struct."""
    id: int
    helper_function_id: int
    kind: HelperCallKind
    target_name: str
    target_method: Optional[str] = None
    line_offset: int
    expression: str
    target_helper_id: Optional[int] = Field(None, description="Resolved target, filled by the join engine")

    @property
    def is_walkable(self) -> bool:
        """Edges naming a callable can be followed to another helper."""
        return self.kind == HelperCallKind.CALLS_HELPER or self.target_method is not None


class IndirectReference(BaseModel):
    """Derived fact: a template call joined to the helper it resolves to."""
    id: int
    template_call_id: int
    test_function_id: int
    step_index: int
    helper_function_id: Optional[int] = Field(None, description="First-hop helper (None when unresolved)")
    source_helper_id: Optional[int] = Field(None, description="Helper shown as the source of the configuration")
    via_edge_id: Optional[int] = Field(None, description="Helper call edge walked for the extra hop")
    kind: ReferenceKind


class ResolvedTarget(BaseModel):
    """Sequential member that names an extracted test function."""
    state: Literal["RESOLVED"] = "RESOLVED"
    test_function_id: int


class UnresolvedTarget(BaseModel):
    """Sequential member whose function lies outside the scanned corpus."""
    state: Literal["UNRESOLVED"] = "UNRESOLVED"
    name: str
    stub_test_function_id: int


SequentialTarget = Annotated[Union[ResolvedTarget, UnresolvedTarget], Field(discriminator="state")]


class SequentialReference(BaseModel):
    """Entry point test linked to a member through a group and key."""
    id: int
    entry_point_id: int
    kind: ReferenceKind
    group: Optional[str] = None
    key: Optional[str] = None
    declared_index: Optional[int] = None
    line: Optional[int] = None
    target: SequentialTarget

    @property
    def referenced_test_function_id(self) -> int:
        if isinstance(self.target, ResolvedTarget):
            return self.target.test_function_id
        return self.target.stub_test_function_id

    @property
    def is_resolved(self) -> bool:
        return isinstance(self.target, ResolvedTarget)


class Registration(BaseModel):
    """Canonical registration of an entity by a group."""
    id: int
    entity_name: str
    group_id: int
    source_path: str
