"""Pydantic models for request/response validation."""
from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field, field_validator


class CreateElectionRequest(BaseModel):
    """Election creation request model."""

    description: str = Field(..., max_length=500, description="Election description")

    class Config:
        json_schema_extra = {
            "example": {
                "description": "Test Election"
            }
        }


class AddCandidateRequest(BaseModel):
    """Candidate creation request model."""

    name: str = Field(..., max_length=200, description="Candidate name")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Jane Doe"
            }
        }


class RegisterVoterRequest(BaseModel):
    """Voter registration request model."""

    address: str = Field(..., description="Voter address")

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        """Validate address is not blank."""
        if not v or not v.strip():
            raise ValueError("Address cannot be empty")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "address": "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
            }
        }


class VoteRequest(BaseModel):
    """Vote submission request model."""

    candidate_id: int = Field(..., description="Candidate ID within the election")

    class Config:
        json_schema_extra = {
            "example": {
                "candidate_id": 1
            }
        }


class ElectionCreatedResponse(BaseModel):
    """Election creation response model."""

    election_id: int


class CandidateAddedResponse(BaseModel):
    """Candidate creation response model."""

    election_id: int
    candidate_id: int


class VoterRegisteredResponse(BaseModel):
    """Voter registration response model."""

    address: str
    status: str = "registered"


class VoteResponse(BaseModel):
    """Vote submission response model."""

    election_id: int
    candidate_id: int
    status: str = Field(..., description="Status of the submission")
    message: str = Field(default="Vote recorded successfully", description="Response message")

    class Config:
        json_schema_extra = {
            "example": {
                "election_id": 0,
                "candidate_id": 1,
                "status": "accepted",
                "message": "Vote recorded successfully"
            }
        }


class ElectionResponse(BaseModel):
    """Election information response model."""

    election_id: int
    description: str
    is_active: bool
    candidate_count: int

    class Config:
        json_schema_extra = {
            "example": {
                "election_id": 0,
                "description": "Test Election",
                "is_active": True,
                "candidate_count": 2
            }
        }


class CandidateResponse(BaseModel):
    """Candidate information response model."""

    candidate_id: int
    name: str
    vote_count: int


class WinnerResponse(BaseModel):
    """Winner of a closed election."""

    election_id: int
    candidate_id: int
    name: str
    vote_count: int

    class Config:
        json_schema_extra = {
            "example": {
                "election_id": 0,
                "candidate_id": 1,
                "name": "Jane Doe",
                "vote_count": 1
            }
        }


class VoterStatusResponse(BaseModel):
    """Whether an address has voted in an election."""

    election_id: int
    address: str
    registered: bool
    has_voted: bool


class RegisteredVotersResponse(BaseModel):
    """Registered voter addresses in registration order."""

    voters: List[str]
    total: int


class OwnerResponse(BaseModel):
    """Registry owner response model."""

    owner: str


class EventResponse(BaseModel):
    """Registry event response model."""

    event_type: str
    data: Dict[str, Any]
    sequence: int
    timestamp: str


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Health check timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "services": {
                    "registry": "ok",
                    "rabbitmq": "disabled"
                },
                "timestamp": "2024-01-15T10:30:00"
            }
        }


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: dict = Field(default_factory=dict, description="Additional error details")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "AlreadyVoted",
                "message": "Already voted.",
                "details": {"election_id": 0}
            }
        }
