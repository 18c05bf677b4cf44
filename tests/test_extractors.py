"""
Unit tests for the type-specific extractors and the shared field rules.
"""

import unittest

from caseintake.extractors import EXTRACTORS, get_extractor
from caseintake.extractors.anaesthesia_record import (
    AnaesthesiaRecordExtractor,
    extract_anaesthetic_type,
)
from caseintake.extractors.discharge_summary import (
    DischargeSummaryExtractor,
    derive_stay_type,
    extract_funding_status,
)
from caseintake.extractors.fields import (
    ASA_RULES,
    BLOOD_LOSS_RULES,
    HEIGHT_RULES,
    WEIGHT_RULES,
    extract_complications,
    first_accepted,
)
from caseintake.extractors.generic import GenericExtractor, extract_facility
from caseintake.extractors.operation_note import OperationNoteExtractor
from caseintake.models.document import (
    AdmissionUrgency,
    DocumentType,
    FundingStatus,
    Gender,
    StayType,
)

OPERATION_NOTE = """Operation Note
Procedure: Carpal tunnel release
Surgeon: Dr Alice Brown
Assistant: Bob Green
Anaesthetist: Dr Carol White
Diagnosis: Carpal tunnel syndrome
Start time: 09:15
End time: 10:05
Duration: 50 min
EBL: 20 ml
Closure: 4-0 nylon
Drains: Nil
Post-op instructions: Elevate hand, review in 2 weeks
Complications: Nil"""

DISCHARGE_SUMMARY = """Waikato DHB Discharge Summary
NHI: ABC1234
Admission Date: 01/12/2025
Discharge Date: 03/12/2025
Admission type: Elective
Consultant: Dr Jane Smith
Diagnosis: Cellulitis of left leg
Complications: Wound infection"""


class TestFieldRules(unittest.TestCase):
    """Unit tests for the shared pattern-rule cascades."""

    def test_weight_bounds(self):
        """An implausible weight is rejected; a plausible one is accepted."""
        self.assertIsNone(first_accepted("Weight: 500kg", WEIGHT_RULES))
        self.assertIsNone(first_accepted("500kg", WEIGHT_RULES))
        self.assertEqual(first_accepted("Weight: 70kg", WEIGHT_RULES), 70.0)
        self.assertEqual(first_accepted("wt 82.5 kg", WEIGHT_RULES), 82.5)

    def test_height_bounds(self):
        self.assertEqual(first_accepted("Height: 170cm", HEIGHT_RULES), 170.0)
        self.assertIsNone(first_accepted("Height: 90cm", HEIGHT_RULES))

    def test_asa_digits_and_numerals(self):
        self.assertEqual(first_accepted("ASA 2", ASA_RULES), 2)
        self.assertEqual(first_accepted("ASA: III", ASA_RULES), 3)
        self.assertEqual(first_accepted("Physical status 4", ASA_RULES), 4)
        self.assertIsNone(first_accepted("ASA 7", ASA_RULES))
        self.assertIsNone(first_accepted("no score", ASA_RULES))

    def test_blood_loss_thousands_separator(self):
        self.assertEqual(first_accepted("EBL: 1,200 ml", BLOOD_LOSS_RULES), 1200)
        self.assertEqual(first_accepted("Estimated blood loss: approx 350ml", BLOOD_LOSS_RULES), 350)
        self.assertIsNone(first_accepted("EBL: 1,20 ml", BLOOD_LOSS_RULES))
        self.assertIsNone(first_accepted("EBL: 12.5 ml", BLOOD_LOSS_RULES))

    def test_complications(self):
        self.assertEqual(
            extract_complications("Complications: wound infection and bleeding"),
            ["wound infection", "bleeding"],
        )
        self.assertEqual(extract_complications("Complications: Nil"), [])
        self.assertIsNone(extract_complications("Complications: patient happy"))
        self.assertIsNone(extract_complications("No section here"))


class TestDischargeSummaryExtractor(unittest.TestCase):
    """Unit tests for the discharge summary extractor."""

    def setUp(self):
        self.extractor = DischargeSummaryExtractor()

    def test_extract(self):
        data = self.extractor.extract(DISCHARGE_SUMMARY)

        self.assertEqual(data.document_type, DocumentType.DISCHARGE_SUMMARY)
        self.assertEqual(data.nhi, "ABC1234")
        self.assertEqual(data.admission_date, "2025-12-01")
        self.assertEqual(data.discharge_date, "2025-12-03")
        self.assertEqual(data.admission_urgency, AdmissionUrgency.ELECTIVE)
        self.assertEqual(data.stay_type, StayType.INPATIENT)
        self.assertEqual(data.surgeon, "Jane Smith")
        self.assertEqual(data.diagnosis, "Cellulitis of left leg")
        self.assertEqual(data.complications, ["wound infection"])
        self.assertIsNone(data.funding_status)
        self.assertIsNone(data.procedure_notes)

    def test_funding_status(self):
        self.assertEqual(extract_funding_status("ACC claim: yes"), FundingStatus.ACC)
        self.assertEqual(extract_funding_status("Private patient"), FundingStatus.PRIVATE)
        self.assertIsNone(extract_funding_status("Funding not stated"))

    def test_stay_type(self):
        self.assertEqual(derive_stay_type("", "2025-12-01", "2025-12-01"), StayType.DAY_CASE)
        self.assertEqual(derive_stay_type("", "2025-12-01", "2025-12-04"), StayType.INPATIENT)
        self.assertEqual(
            derive_stay_type("Day case surgery", "2025-12-01", "2025-12-04"), StayType.DAY_CASE
        )
        self.assertIsNone(derive_stay_type("", "2025-12-01", None))

    def test_empty_text(self):
        data = self.extractor.extract("")

        self.assertIsNone(data.nhi)
        self.assertIsNone(data.diagnosis)


class TestAnaesthesiaRecordExtractor(unittest.TestCase):
    """Unit tests for the anaesthesia record extractor."""

    def test_extract(self):
        text = (
            "Anaesthesia Record\nASA: 2\nWeight: 82 kg\nHeight: 178 cm\n"
            "Tourniquet time: 45 min\nGeneral anaesthetic\nEBL: 150 ml"
        )

        data = AnaesthesiaRecordExtractor().extract(text)

        self.assertEqual(data.asa_score, 2)
        self.assertEqual(data.weight_kg, 82.0)
        self.assertEqual(data.height_cm, 178.0)
        self.assertEqual(data.tourniquet_time_minutes, 45)
        self.assertEqual(data.anaesthetic_type, "general")
        self.assertEqual(data.blood_loss_ml, 150)

    def test_anaesthetic_type(self):
        cases = {
            "General anaesthetic with axillary block": "general_regional",
            "GA + LMA": "general",
            "Spinal anaesthesia": "spinal",
            "Epidural in situ": "epidural",
            "Brachial plexus block": "regional",
            "Performed under LA": "local",
            "Sedation: MAC": "sedation",
            "Plan discussed with the gastro team": None,
        }
        for text, expected in cases.items():
            with self.subTest(text=text):
                self.assertEqual(extract_anaesthetic_type(text), expected)


class TestOperationNoteExtractor(unittest.TestCase):
    """Unit tests for the operation note extractor."""

    def test_extract(self):
        data = OperationNoteExtractor().extract(OPERATION_NOTE)

        self.assertEqual(data.procedure_name, "Carpal tunnel release")
        self.assertEqual(data.surgeon, "Alice Brown")
        self.assertEqual(data.assistant, "Bob Green")
        self.assertEqual(data.anaesthetist, "Carol White")
        self.assertEqual(data.diagnosis, "Carpal tunnel syndrome")
        self.assertEqual(data.surgery_start_time, "09:15")
        self.assertEqual(data.surgery_end_time, "10:05")
        self.assertEqual(data.duration_minutes, 50)
        self.assertEqual(data.estimated_blood_loss, 20)
        self.assertEqual(data.closure_method, "4-0 nylon")
        self.assertEqual(data.drains, "Nil")
        self.assertEqual(data.post_op_instructions, "Elevate hand, review in 2 weeks")
        self.assertEqual(data.complications, [])
        self.assertIsNone(data.procedure_details)

    def test_duration_in_hours(self):
        data = OperationNoteExtractor().extract("Duration: 1.5 hrs")

        self.assertEqual(data.duration_minutes, 90)

    def test_invalid_values_rejected(self):
        data = OperationNoteExtractor().extract("Start time: 25:10\nClosure: 10:05\nEBL: 20000 ml")

        self.assertIsNone(data.surgery_start_time)
        self.assertIsNone(data.closure_method)
        self.assertIsNone(data.estimated_blood_loss)


class TestGenericExtractor(unittest.TestCase):
    """Unit tests for the generic fallback extractor."""

    def test_extract(self):
        text = (
            "Patient (67yo, M) seen at Middlemore Hospital.\n"
            "Diagnosis: Distal radius fracture\n"
            "Surgeon: Dr Sam Lee"
        )

        data = GenericExtractor().extract(text)

        self.assertEqual(data.gender, Gender.MALE)
        self.assertEqual(data.facility, "Middlemore Hospital")
        self.assertEqual(data.diagnosis, "Distal radius fracture")
        self.assertEqual(data.surgeon, "Sam Lee")
        self.assertIsNone(data.nhi)

    def test_gender_label(self):
        self.assertEqual(GenericExtractor().extract("Sex: F").gender, Gender.FEMALE)
        self.assertEqual(GenericExtractor().extract("female patient").gender, Gender.FEMALE)

    def test_facility_case_insensitive(self):
        self.assertEqual(extract_facility("seen at WAIKATO HOSPITAL"), "Waikato Hospital")
        self.assertIsNone(extract_facility("seen at home"))

    def test_facility_requires_full_hospital_name(self):
        self.assertIsNone(extract_facility("Patient lives at 12 Wellington Street, Hamilton"))
        self.assertIsNone(extract_facility("Referred from North Shore GP practice"))
        self.assertEqual(extract_facility("Transferred to north shore hospital"), "North Shore Hospital")

    def test_measurements(self):
        data = GenericExtractor().extract("ASA 2, Weight: 70kg, Height: 170cm")

        self.assertEqual(data.asa_score, 2)
        self.assertEqual(data.weight_kg, 70.0)
        self.assertEqual(data.height_cm, 170.0)


class TestRegistry(unittest.TestCase):
    """Unit tests for the extractor registry."""

    def test_every_type_has_an_extractor(self):
        for document_type in DocumentType:
            with self.subTest(document_type=document_type):
                self.assertEqual(EXTRACTORS[document_type].document_type, document_type)
                self.assertIs(get_extractor(document_type), EXTRACTORS[document_type])


if __name__ == "__main__":
    unittest.main()
