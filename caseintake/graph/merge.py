"""
Merging of type-specific partial records into the canonical case record.

Each document type has an explicit table of ``FieldMapping`` entries naming
where a partial-record value lands on ``ExtractedCaseData`` and which name is
recorded in the provenance list. Merging never overwrites a populated field,
and a value that fails the record's validation is dropped rather than raised.
"""

from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog
from pydantic import ValidationError

from caseintake.models.document import (
    ClinicalDetails,
    DocumentType,
    ExtractedCaseData,
    FundingStatus,
    ProcedureEntry,
    TeamMember,
    TeamRole,
)
from caseintake.models.partials import (
    DischargeSummaryData,
    OperationNoteData,
    PartialRecord,
)

logger = structlog.get_logger(__name__)

CLINICAL_DETAILS = "clinical_details"

# Procedure name used when a discharge summary only carries free-text notes
NOTES_ONLY_PROCEDURE = "See notes"


@dataclass(frozen=True)
class FieldMapping:
    """
    Maps one partial-record value onto the canonical record.

    ``target`` is an attribute of ``ExtractedCaseData`` or a
    ``clinical_details.<attr>`` path.
    """

    target: str
    provenance: str
    source: Callable[[PartialRecord], Any]


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, list) and not value)


def write_field(
        record: ExtractedCaseData,
        target: str,
        provenance_name: str,
        value: Any,
        provenance: List[str],
) -> bool:
    """
    Write a value to the record unless the field is already populated.

    Args:
        record: Canonical record, modified in place
        target: Attribute name or ``clinical_details.<attr>`` path
        provenance_name: camelCase name appended to ``provenance`` on write
        value: Value to write; None and empty lists are ignored
        provenance: Provenance list, modified in place

    Returns:
        True if the value was written
    """
    if _is_empty(value):
        return False

    try:
        if target.startswith(f"{CLINICAL_DETAILS}."):
            attribute = target.split(".", 1)[1]
            details = record.clinical_details or ClinicalDetails()
            if getattr(details, attribute) is not None:
                return False
            setattr(details, attribute, value)
            if record.clinical_details is None:
                record.clinical_details = details
        else:
            if getattr(record, target) is not None:
                return False
            setattr(record, target, value)
    except ValidationError as e:
        logger.warning(
            "Discarded value that failed validation",
            field=provenance_name,
            errors=e.error_count(),
        )
        return False

    if provenance_name not in provenance:
        provenance.append(provenance_name)
    return True


def _single_procedure(name_getter: Callable, notes_getter: Optional[Callable] = None):
    def _build(partial: PartialRecord) -> Optional[List[ProcedureEntry]]:
        name = name_getter(partial)
        if not name:
            return None
        notes = notes_getter(partial) if notes_getter else None
        return [ProcedureEntry(procedure_name=name, notes=notes)]
    return _build


def _consultant(partial: PartialRecord) -> Optional[List[TeamMember]]:
    if not partial.surgeon:
        return None
    return [TeamMember(name=partial.surgeon, role=TeamRole.CONSULTANT)]


def _discharge_procedures(partial: DischargeSummaryData) -> Optional[List[ProcedureEntry]]:
    if not partial.procedure_notes:
        return None
    return [ProcedureEntry(procedure_name=NOTES_ONLY_PROCEDURE, notes=partial.procedure_notes)]


def _operating_team(partial: OperationNoteData) -> Optional[List[TeamMember]]:
    members = [
        TeamMember(name=name, role=role)
        for name, role in (
            (partial.surgeon, TeamRole.CONSULTANT),
            (partial.assistant, TeamRole.SURGICAL_ASSISTANT),
            (partial.anaesthetist, TeamRole.ANAESTHETIST),
        )
        if name
    ]
    return members or None


MERGE_TABLES: Dict[DocumentType, Tuple[FieldMapping, ...]] = {
    DocumentType.DISCHARGE_SUMMARY: (
        FieldMapping("patient_identifier", "patientIdentifier", attrgetter("nhi")),
        FieldMapping("funding_status", "fundingStatus", attrgetter("funding_status")),
        FieldMapping("admission_date", "admissionDate", attrgetter("admission_date")),
        FieldMapping("discharge_date", "dischargeDate", attrgetter("discharge_date")),
        FieldMapping("admission_urgency", "admissionUrgency", attrgetter("admission_urgency")),
        FieldMapping("stay_type", "stayType", attrgetter("stay_type")),
        FieldMapping("procedures", "procedures", _discharge_procedures),
        FieldMapping("operating_team", "operatingTeam", _consultant),
        FieldMapping("final_diagnosis", "finalDiagnosis", attrgetter("diagnosis")),
        FieldMapping("complications", "complications", attrgetter("complications")),
    ),
    DocumentType.ANAESTHESIA_RECORD: (
        FieldMapping("asa_score", "asaScore", attrgetter("asa_score")),
        FieldMapping("weight_kg", "weightKg", attrgetter("weight_kg")),
        FieldMapping("height_cm", "heightCm", attrgetter("height_cm")),
        FieldMapping(
            "clinical_details.tourniquet_time_minutes",
            "tourniquetTimeMinutes",
            attrgetter("tourniquet_time_minutes"),
        ),
        FieldMapping("anaesthetic_type", "anaestheticType", attrgetter("anaesthetic_type")),
        FieldMapping(
            "clinical_details.estimated_blood_loss",
            "estimatedBloodLoss",
            attrgetter("blood_loss_ml"),
        ),
    ),
    DocumentType.OPERATION_NOTE: (
        FieldMapping(
            "procedures",
            "procedures",
            _single_procedure(attrgetter("procedure_name"), attrgetter("procedure_details")),
        ),
        FieldMapping("operating_team", "operatingTeam", _operating_team),
        FieldMapping("final_diagnosis", "finalDiagnosis", attrgetter("diagnosis")),
        FieldMapping(
            "clinical_details.estimated_blood_loss",
            "estimatedBloodLoss",
            attrgetter("estimated_blood_loss"),
        ),
        FieldMapping("clinical_details.drains", "drains", attrgetter("drains")),
        FieldMapping("clinical_details.closure_method", "closureMethod", attrgetter("closure_method")),
        FieldMapping(
            "clinical_details.post_op_instructions",
            "postOpInstructions",
            attrgetter("post_op_instructions"),
        ),
        FieldMapping(
            "clinical_details.surgery_start_time", "surgeryStartTime", attrgetter("surgery_start_time")
        ),
        FieldMapping("clinical_details.surgery_end_time", "surgeryEndTime", attrgetter("surgery_end_time")),
        FieldMapping("clinical_details.duration_minutes", "durationMinutes", attrgetter("duration_minutes")),
        FieldMapping("complications", "complications", attrgetter("complications")),
    ),
    DocumentType.GENERIC: (
        FieldMapping("patient_identifier", "patientIdentifier", attrgetter("nhi")),
        FieldMapping("gender", "gender", attrgetter("gender")),
        FieldMapping("final_diagnosis", "finalDiagnosis", attrgetter("diagnosis")),
        FieldMapping("procedures", "procedures", _single_procedure(attrgetter("procedure"))),
        FieldMapping("operating_team", "operatingTeam", _consultant),
        FieldMapping("facility", "facility", attrgetter("facility")),
        FieldMapping("asa_score", "asaScore", attrgetter("asa_score")),
        FieldMapping("weight_kg", "weightKg", attrgetter("weight_kg")),
        FieldMapping("height_cm", "heightCm", attrgetter("height_cm")),
        FieldMapping("complications", "complications", attrgetter("complications")),
    ),
}

# Values implied by the document type itself rather than its content
TYPE_DEFAULTS: Dict[DocumentType, Tuple[Tuple[str, str, Any], ...]] = {
    DocumentType.DISCHARGE_SUMMARY: (
        ("facility", "facility", "Waikato Hospital"),
        ("funding_status", "fundingStatus", FundingStatus.PUBLIC),
    ),
}


def merge_partial(
        record: ExtractedCaseData, partial: PartialRecord, provenance: List[str]
) -> ExtractedCaseData:
    """
    Merge a partial record using the mapping table for its document type.

    Args:
        record: Canonical record, modified in place
        partial: Tagged partial record from a type-specific extractor
        provenance: Provenance list, modified in place

    Returns:
        The same record
    """
    for mapping in MERGE_TABLES[partial.document_type]:
        write_field(record, mapping.target, mapping.provenance, mapping.source(partial), provenance)
    return record


def apply_type_defaults(
        record: ExtractedCaseData, document_type: DocumentType, provenance: List[str]
) -> ExtractedCaseData:
    """Fill fields that follow from the document type, without overwriting."""
    for target, provenance_name, value in TYPE_DEFAULTS.get(document_type, ()):
        write_field(record, target, provenance_name, value, provenance)
    return record


__all__ = [
    "FieldMapping",
    "MERGE_TABLES",
    "TYPE_DEFAULTS",
    "apply_type_defaults",
    "merge_partial",
    "write_field",
]
