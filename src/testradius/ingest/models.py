"""Pydantic models for scanner output and enrichment input."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class WorkerResult(BaseModel):
    """Output of one scanner worker over a contiguous chunk of candidates."""
    processed: int = Field(default=0, description="Files read by this worker")
    relevant_paths: List[str] = Field(default_factory=list, description="Paths mentioning the entity or a sequencing construct")
    content: Dict[str, str] = Field(default_factory=dict, description="Text of every file read, by path")
    failed_paths: List[str] = Field(default_factory=list, description="Paths that could not be read")


class ScanResult(BaseModel):
    """Merged scanner output."""
    root_dir: str = Field(..., description="Absolute corpus root")
    candidate_files: List[str] = Field(default_factory=list, description="All candidate test files, sorted")
    relevant_files: List[str] = Field(default_factory=list, description="Relevant test files, sorted")
    content: Dict[str, str] = Field(default_factory=dict, description="Text of the relevant files, by path")
    registration_content: Dict[str, str] = Field(default_factory=dict, description="Text of registration files, by path")
    read_failures: List[str] = Field(default_factory=list, description="Paths that could not be read")
    workers: int = Field(default=1, description="Worker count actually used")


class EnrichmentRecord(BaseModel):
    """Deep-parser fact binding a function to its receiver type."""
    file: str = Field(..., description="Path relative to the corpus root")
    function_name: str = Field(..., alias="functionName", description="Function name")
    is_test_function: bool = Field(False, alias="isTestFunction", description="Whether the function is a test")
    receiver_type_name: str = Field(..., alias="receiverTypeName", description="Struct type the function operates on")

    class Config:
        """Pydantic config."""
        populate_by_name = True
