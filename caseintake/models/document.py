"""
Data models for clinical documents and extraction results.

This module defines the core data structures used throughout the ingestion
pipeline: document classification, the canonical case record that every
extractor contributes to, and the final pipeline result.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class DocumentType(str, Enum):
    """Kinds of clinical document the classifier recognises."""
    DISCHARGE_SUMMARY = "DISCHARGE_SUMMARY"
    ANAESTHESIA_RECORD = "ANAESTHESIA_RECORD"
    OPERATION_NOTE = "OPERATION_NOTE"
    GENERIC = "GENERIC"

    @property
    def display_name(self) -> str:
        """Human readable name of the document type."""
        return DOCUMENT_TYPE_NAMES[self]


DOCUMENT_TYPE_NAMES = {
    DocumentType.DISCHARGE_SUMMARY: "Waikato Discharge Summary",
    DocumentType.ANAESTHESIA_RECORD: "Anaesthesia Record",
    DocumentType.OPERATION_NOTE: "Operation Note",
    DocumentType.GENERIC: "Generic Document",
}


class Confidence(str, Enum):
    """Confidence tier attached to a classification."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class AdmissionUrgency(str, Enum):
    ELECTIVE = "elective"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class StayType(str, Enum):
    DAY_CASE = "day_case"
    INPATIENT = "inpatient"
    OUTPATIENT = "outpatient"


class FundingStatus(str, Enum):
    ACC = "ACC"
    PUBLIC = "Public"
    PRIVATE = "Private"


class TeamRole(str, Enum):
    CONSULTANT = "consultant"
    SURGICAL_ASSISTANT = "surgical_assistant"
    ANAESTHETIST = "anaesthetist"


class ClassificationResult(CamelModel):
    """Outcome of classifying a document."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    document_type: DocumentType = Field(..., description="Classified document type")
    confidence: Confidence = Field(..., description="Confidence tier of the classification")
    detected_triggers: List[str] = Field(
        default_factory=list, description="Literal trigger phrases that fired, in rule order"
    )


class ProcedureEntry(CamelModel):
    """A procedure performed during the case."""

    procedure_name: str = Field(..., description="Name of the procedure")
    notes: Optional[str] = Field(None, description="Free-text operative notes")


class TeamMember(CamelModel):
    """A member of the operating team."""

    name: str = Field(..., description="Name as written in the document")
    role: TeamRole = Field(..., description="Role in the operating team")


class ClinicalDetails(CamelModel):
    """Intra-operative details of the case."""

    surgery_start_time: Optional[str] = Field(None, description="Start time as HH:MM")
    surgery_end_time: Optional[str] = Field(None, description="End time as HH:MM")
    duration_minutes: Optional[int] = Field(None, ge=1, le=1440, description="Operating time")
    tourniquet_time_minutes: Optional[int] = Field(None, ge=0, le=300, description="Tourniquet time")
    estimated_blood_loss: Optional[int] = Field(None, ge=0, le=10000, description="Blood loss in ml")
    closure_method: Optional[str] = Field(None, description="Wound closure method")
    drains: Optional[str] = Field(None, description="Drains inserted")
    post_op_instructions: Optional[str] = Field(None, description="Post-operative instructions")


class ExtractedCaseData(CamelModel):
    """
    Canonical case record populated by the pipeline.

    Every field is optional; an absent field means the value was not found.
    Numeric bounds are declared here and validated on assignment.
    """

    patient_identifier: Optional[str] = Field(None, description="NHI number")
    procedure_date: Optional[str] = Field(None, description="Procedure date as YYYY-MM-DD")
    gender: Optional[Gender] = None
    admission_date: Optional[str] = Field(None, description="Admission date as YYYY-MM-DD")
    discharge_date: Optional[str] = Field(None, description="Discharge date as YYYY-MM-DD")
    admission_urgency: Optional[AdmissionUrgency] = None
    stay_type: Optional[StayType] = None
    asa_score: Optional[int] = Field(None, ge=1, le=6, description="ASA physical status")
    weight_kg: Optional[float] = Field(None, ge=20, le=300)
    height_cm: Optional[float] = Field(None, ge=100, le=250)
    final_diagnosis: Optional[str] = None
    procedures: Optional[List[ProcedureEntry]] = None
    operating_team: Optional[List[TeamMember]] = None
    clinical_details: Optional[ClinicalDetails] = None
    funding_status: Optional[FundingStatus] = None
    facility: Optional[str] = None
    anaesthetic_type: Optional[str] = None
    complications: Optional[List[str]] = None


class DocumentRouterResult(CamelModel):
    """Result of running a document through the ingestion pipeline."""

    document_type: DocumentType = Field(..., description="Classified document type")
    document_type_name: str = Field(..., description="Display name of the document type")
    confidence: Confidence = Field(..., description="Classification confidence tier")
    detected_triggers: List[str] = Field(default_factory=list, description="Classification triggers")
    extracted_data: ExtractedCaseData = Field(
        default_factory=ExtractedCaseData, description="Canonical case record"
    )
    auto_filled_fields: List[str] = Field(
        default_factory=list, description="Fields populated by the pipeline, in write order"
    )


class RedactedItem(CamelModel):
    """A value removed from a document during redaction."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    type: str = Field(..., description="Kind of value removed (NHI or DATE)")
    original: str = Field(..., description="The matched text")
    position: int = Field(..., description="First offset of the match in the original text")


class RedactionResult(CamelModel):
    """Redacted text plus a record of what was removed."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    redacted_text: str = Field(..., description="Text with identifiers and dates replaced")
    redacted_items: List[RedactedItem] = Field(default_factory=list)
