"""
Partial records produced by the type-specific extractors.

Each extractor returns its own tagged variant. The ``document_type`` tag tells
the merge layer which field-mapping table applies.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

from caseintake.models.document import (
    AdmissionUrgency,
    DocumentType,
    FundingStatus,
    Gender,
    StayType,
)


class PartialRecord(BaseModel):
    """Base for extractor output; every field defaults to absent."""

    model_config = ConfigDict(frozen=True)


class DischargeSummaryData(PartialRecord):
    document_type: Literal[DocumentType.DISCHARGE_SUMMARY] = DocumentType.DISCHARGE_SUMMARY
    nhi: Optional[str] = None
    funding_status: Optional[FundingStatus] = None
    admission_date: Optional[str] = None
    discharge_date: Optional[str] = None
    admission_urgency: Optional[AdmissionUrgency] = None
    stay_type: Optional[StayType] = None
    procedure_notes: Optional[str] = None
    surgeon: Optional[str] = None
    diagnosis: Optional[str] = None
    complications: Optional[List[str]] = None


class AnaesthesiaRecordData(PartialRecord):
    document_type: Literal[DocumentType.ANAESTHESIA_RECORD] = DocumentType.ANAESTHESIA_RECORD
    asa_score: Optional[int] = None
    weight_kg: Optional[float] = None
    height_cm: Optional[float] = None
    tourniquet_time_minutes: Optional[int] = None
    anaesthetic_type: Optional[str] = None
    blood_loss_ml: Optional[int] = None


class OperationNoteData(PartialRecord):
    document_type: Literal[DocumentType.OPERATION_NOTE] = DocumentType.OPERATION_NOTE
    procedure_name: Optional[str] = None
    procedure_details: Optional[str] = None
    surgeon: Optional[str] = None
    assistant: Optional[str] = None
    anaesthetist: Optional[str] = None
    diagnosis: Optional[str] = None
    estimated_blood_loss: Optional[int] = None
    drains: Optional[str] = None
    closure_method: Optional[str] = None
    post_op_instructions: Optional[str] = None
    surgery_start_time: Optional[str] = None
    surgery_end_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    complications: Optional[List[str]] = None


class GenericDocumentData(PartialRecord):
    document_type: Literal[DocumentType.GENERIC] = DocumentType.GENERIC
    nhi: Optional[str] = None
    gender: Optional[Gender] = None
    diagnosis: Optional[str] = None
    procedure: Optional[str] = None
    surgeon: Optional[str] = None
    facility: Optional[str] = None
    asa_score: Optional[int] = None
    weight_kg: Optional[float] = None
    height_cm: Optional[float] = None
    complications: Optional[List[str]] = None


AnyPartialRecord = Union[
    DischargeSummaryData,
    AnaesthesiaRecordData,
    OperationNoteData,
    GenericDocumentData,
]
