from typing import Dict, List, Optional
from pydantic import BaseModel, Field

class CheckRequest(BaseModel):
    text: str = Field(..., max_length=10000, description='Full text of the message about to be posted')
    candidates: Optional[List[str]] = Field(None, max_length=100, description='Link-like tokens found by the host page; extracted from the text when omitted')

class CandidateResponse(BaseModel):
    token: str
    is_candidate: bool
    tld: str
    features: Optional[Dict[str, int]] = None
    margin: Optional[float] = None
    label: Optional[int] = Field(None, description='1 = typo-URL, -1 = intended link')

class CheckResponse(BaseModel):
    typos: List[str] = Field(default_factory=list, description='Tokens the classifier flagged as typo-URLs')
    warning: bool
    message: Optional[str] = None
    model_available: bool
    candidates: List[CandidateResponse] = Field(default_factory=list)

class BatchCheckRequest(BaseModel):
    messages: List[CheckRequest] = Field(..., max_length=50, description='Messages to check (max 50)')

class BatchCheckResponse(BaseModel):
    results: List[CheckResponse]
    total_checked: int
    warning_count: int
