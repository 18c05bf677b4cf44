"""
Extractor for operation notes and operative reports.
"""

import re
from typing import Optional

from caseintake.extractors.base import DocumentExtractor
from caseintake.extractors.fields import (
    BLOOD_LOSS_RULES,
    DURATION_MINUTES_RANGE,
    PatternRule,
    SURGEON_RULES,
    extract_complications,
    first_accepted,
    has_letters,
    in_range,
    labelled_block,
    labelled_line,
    labelled_name,
    length_between,
)
from caseintake.models.document import DocumentType
from caseintake.models.partials import OperationNoteData

PROCEDURE_NAME_RULES = (
    labelled_line(r"name\s+of\s+procedure", accept=length_between(3, 200)),
    labelled_line(r"operative\s+procedure", accept=length_between(3, 200)),
    labelled_line(
        r"procedure\s+performed|operation\s+performed|procedure|operation|surgery",
        accept=length_between(3, 200),
    ),
)

ASSISTANT_RULES = (
    labelled_name(r"first\s+assistant|surgical\s+assistant|assistant"),
)

ANAESTHETIST_RULES = (
    labelled_name(r"anaesthetist|anesthetist|anaesthesiologist|anesthesiologist"),
)

DIAGNOSIS_RULES = (
    labelled_line(
        r"pre-?operative\s+diagnosis|post-?operative\s+diagnosis|diagnosis",
        accept=length_between(3, 300),
    ),
    labelled_line(r"dx", accept=length_between(3, 300)),
)

PROCEDURE_DETAILS_RULES = (
    labelled_block(
        r"procedure\s+details|operative\s+details|description\s+of\s+procedure|technique",
        accept=lambda details: len(details) > 10,
        limit=3000,
    ),
)

DRAINS_RULES = (labelled_line(r"drains?\s+inserted|drains?"),)

CLOSURE_RULES = (labelled_line(r"wound\s+closure|closure"),)

POST_OP_RULES = (
    labelled_block(
        r"post[\s\-]?op(?:erative)?\s+(?:instructions?|plan)",
        accept=has_letters,
        limit=500,
    ),
)

_CLOCK = r"(\d{1,2})[:.](\d{2})\b"

START_TIME_RULES = (
    PatternRule(
        re.compile(
            rf"\b(?:start\s+time|surgery\s+start|knife\s+to\s+skin|incision)\b[ \t]*[:\-]?[ \t]*{_CLOCK}",
            re.IGNORECASE,
        ),
        lambda match: _clock_time(match),
    ),
)

END_TIME_RULES = (
    PatternRule(
        re.compile(
            rf"\b(?:end\s+time|finish\s+time|surgery\s+end|skin\s+closure|procedure\s+end)\b[ \t]*[:\-]?[ \t]*{_CLOCK}",
            re.IGNORECASE,
        ),
        lambda match: _clock_time(match),
    ),
)

DURATION_RULES = (
    PatternRule(
        re.compile(
            r"\b(?:duration|operating\s+time|surgical\s+time)\b[ \t]*[:\-]?[ \t]*"
            r"(\d+(?:\.\d+)?)[ \t]*(min(?:ute)?s?|hrs?|hours?)?",
            re.IGNORECASE,
        ),
        lambda match: _duration_minutes(match),
        in_range(DURATION_MINUTES_RANGE),
    ),
)


def _clock_time(match: re.Match) -> Optional[str]:
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def _duration_minutes(match: re.Match) -> int:
    amount = float(match.group(1))
    unit = (match.group(2) or "").lower()
    if unit.startswith("h"):
        amount *= 60
    return int(round(amount))


class OperationNoteExtractor(DocumentExtractor):
    """Extracts procedure, team and intra-operative details from an operation note."""

    document_type = DocumentType.OPERATION_NOTE

    def extract(self, text: str) -> OperationNoteData:
        return OperationNoteData(
            procedure_name=first_accepted(text, PROCEDURE_NAME_RULES),
            procedure_details=first_accepted(text, PROCEDURE_DETAILS_RULES),
            surgeon=first_accepted(text, SURGEON_RULES),
            assistant=first_accepted(text, ASSISTANT_RULES),
            anaesthetist=first_accepted(text, ANAESTHETIST_RULES),
            diagnosis=first_accepted(text, DIAGNOSIS_RULES),
            estimated_blood_loss=first_accepted(text, BLOOD_LOSS_RULES),
            drains=first_accepted(text, DRAINS_RULES),
            closure_method=first_accepted(text, CLOSURE_RULES),
            post_op_instructions=first_accepted(text, POST_OP_RULES),
            surgery_start_time=first_accepted(text, START_TIME_RULES),
            surgery_end_time=first_accepted(text, END_TIME_RULES),
            duration_minutes=first_accepted(text, DURATION_RULES),
            complications=extract_complications(text),
        )
