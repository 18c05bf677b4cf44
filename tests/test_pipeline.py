"""
Unit tests for the document pipeline and the merge layer.
"""

import unittest
from unittest.mock import patch

from pydantic import ValidationError

from caseintake.classification.classifier import NO_TRIGGER
from caseintake.graph.merge import apply_type_defaults, merge_partial, write_field
from caseintake.graph.pipeline import DocumentPipeline, get_default_pipeline, process_document
from caseintake.models.document import (
    Confidence,
    DocumentRouterResult,
    DocumentType,
    ExtractedCaseData,
    FundingStatus,
    TeamRole,
)
from caseintake.models.partials import DischargeSummaryData, OperationNoteData

OPERATION_NOTE = """Operation Note
Procedure: Carpal tunnel release
Surgeon: Dr Alice Brown
Assistant: Bob Green
Anaesthetist: Dr Carol White
Diagnosis: Carpal tunnel syndrome
Duration: 50 min
EBL: 20 ml
Closure: 4-0 nylon
Complications: wound infection"""


class TestDocumentPipeline(unittest.TestCase):
    """Unit tests for DocumentPipeline.process."""

    @classmethod
    def setUpClass(cls):
        cls.pipeline = DocumentPipeline()

    def test_discharge_summary_scenario(self):
        result = self.pipeline.process(
            "Discharge Summary\nDHB\nAdmission: 01/12/2025\nDiagnosis: Cellulitis"
        )
        data = result.extracted_data

        self.assertEqual(result.document_type, DocumentType.DISCHARGE_SUMMARY)
        self.assertEqual(result.document_type_name, "Waikato Discharge Summary")
        self.assertEqual(result.confidence, Confidence.HIGH)
        self.assertEqual(result.detected_triggers, ["Discharge Summary", "DHB"])
        self.assertEqual(data.admission_date, "2025-12-01")
        self.assertIn("Cellulitis", data.final_diagnosis)
        self.assertEqual(data.facility, "Waikato Hospital")
        self.assertEqual(data.funding_status, FundingStatus.PUBLIC)
        self.assertEqual(
            result.auto_filled_fields,
            ["procedureDate", "admissionDate", "finalDiagnosis", "facility", "fundingStatus"],
        )

    def test_measurements_without_agent_are_generic(self):
        result = self.pipeline.process("ASA 2, Weight: 70kg, Height: 170cm")
        data = result.extracted_data

        self.assertEqual(result.document_type, DocumentType.GENERIC)
        self.assertEqual(result.confidence, Confidence.LOW)
        self.assertEqual(data.asa_score, 2)
        self.assertEqual(data.weight_kg, 70)
        self.assertEqual(data.height_cm, 170)
        self.assertEqual(result.auto_filled_fields, ["asaScore", "weightKg", "heightCm"])

    def test_measurements_with_agent_are_anaesthesia_record(self):
        result = self.pipeline.process("Propofol 150mg. ASA 2, Weight: 70kg, Height: 170cm")
        data = result.extracted_data

        self.assertEqual(result.document_type, DocumentType.ANAESTHESIA_RECORD)
        self.assertEqual(result.detected_triggers, ["Propofol", "ASA"])
        self.assertEqual(data.asa_score, 2)
        self.assertEqual(data.weight_kg, 70)
        self.assertEqual(data.height_cm, 170)

    def test_identifier_and_date_regardless_of_type(self):
        result = self.pipeline.process("XYZ1234 patient seen 15 March 2026")

        self.assertEqual(result.extracted_data.patient_identifier, "XYZ1234")
        self.assertEqual(result.extracted_data.procedure_date, "2026-03-15")
        self.assertEqual(result.auto_filled_fields, ["patientIdentifier", "procedureDate"])

    def test_identifier_precedence(self):
        """The classifier-independent identifier is not overwritten by the extractor's."""
        result = self.pipeline.process("Waikato DHB Discharge Summary\nRef ABC1234\nNHI: XYZ9876")

        self.assertEqual(result.document_type, DocumentType.DISCHARGE_SUMMARY)
        self.assertEqual(result.extracted_data.patient_identifier, "ABC1234")
        self.assertEqual(result.auto_filled_fields.count("patientIdentifier"), 1)

    def test_explicit_funding_beats_type_default(self):
        result = self.pipeline.process("Waikato DHB Discharge Summary\nACC claim: yes")

        self.assertEqual(result.extracted_data.funding_status, FundingStatus.ACC)
        self.assertEqual(result.auto_filled_fields.count("fundingStatus"), 1)

    def test_operation_note(self):
        result = self.pipeline.process(OPERATION_NOTE)
        data = result.extracted_data

        self.assertEqual(result.document_type, DocumentType.OPERATION_NOTE)
        self.assertEqual(result.confidence, Confidence.MEDIUM)
        self.assertEqual(data.procedures[0].procedure_name, "Carpal tunnel release")
        self.assertEqual(
            [(member.name, member.role) for member in data.operating_team],
            [
                ("Alice Brown", TeamRole.CONSULTANT),
                ("Bob Green", TeamRole.SURGICAL_ASSISTANT),
                ("Carol White", TeamRole.ANAESTHETIST),
            ],
        )
        self.assertEqual(data.final_diagnosis, "Carpal tunnel syndrome")
        self.assertEqual(data.clinical_details.duration_minutes, 50)
        self.assertEqual(data.clinical_details.estimated_blood_loss, 20)
        self.assertEqual(data.clinical_details.closure_method, "4-0 nylon")
        self.assertEqual(data.complications, ["wound infection"])
        self.assertEqual(len(result.auto_filled_fields), len(set(result.auto_filled_fields)))
        self.assertIsNone(data.facility)

    def test_totality(self):
        """Any input yields a structurally valid result."""
        inputs = [
            "",
            "   \n\t",
            "\x00\x01\x02",
            "日本語のテキスト",
            "ASA 99 Weight: -5kg Height: 9999cm EBL: 99999",
            "(" * 5000,
            "Date of surgery: 99/99/9999",
            None,
        ]
        for text in inputs:
            with self.subTest(text=text if text is None else text[:20]):
                result = self.pipeline.process(text)
                self.assertIsInstance(result, DocumentRouterResult)

    def test_empty_text(self):
        result = self.pipeline.process("")

        self.assertEqual(result.document_type, DocumentType.GENERIC)
        self.assertEqual(result.detected_triggers, [NO_TRIGGER])
        self.assertEqual(result.auto_filled_fields, [])
        self.assertEqual(result.extracted_data, ExtractedCaseData())

    def test_internal_error_yields_empty_result(self):
        with patch("caseintake.graph.nodes.classify", side_effect=RuntimeError("boom")):
            result = self.pipeline.process("Operation Note")

        self.assertEqual(result.document_type, DocumentType.GENERIC)
        self.assertEqual(result.document_type_name, "Generic Document")
        self.assertEqual(result.detected_triggers, [NO_TRIGGER])
        self.assertEqual(result.auto_filled_fields, [])

    def test_process_document_uses_shared_pipeline(self):
        self.assertIs(get_default_pipeline(), get_default_pipeline())
        result = process_document("Operation Note")

        self.assertEqual(result.document_type, DocumentType.OPERATION_NOTE)


class TestMerge(unittest.TestCase):
    """Unit tests for the merge layer."""

    def test_write_field_does_not_overwrite(self):
        record = ExtractedCaseData(patient_identifier="ABC1234")
        provenance = []

        written = write_field(record, "patient_identifier", "patientIdentifier", "XYZ9876", provenance)

        self.assertFalse(written)
        self.assertEqual(record.patient_identifier, "ABC1234")
        self.assertEqual(provenance, [])

    def test_out_of_bounds_value_is_omitted(self):
        record = ExtractedCaseData()
        provenance = []

        self.assertFalse(write_field(record, "weight_kg", "weightKg", 500, provenance))
        self.assertFalse(
            write_field(record, "clinical_details.duration_minutes", "durationMinutes", 5000, provenance)
        )

        self.assertIsNone(record.weight_kg)
        self.assertIsNone(record.clinical_details)
        self.assertEqual(provenance, [])

    def test_empty_values_are_skipped(self):
        record = ExtractedCaseData()
        provenance = []

        self.assertFalse(write_field(record, "complications", "complications", [], provenance))
        self.assertFalse(write_field(record, "facility", "facility", None, provenance))
        self.assertIsNone(record.complications)

    def test_nested_fields_share_clinical_details(self):
        record = ExtractedCaseData()
        provenance = []

        write_field(record, "clinical_details.drains", "drains", "Redivac", provenance)
        write_field(record, "clinical_details.duration_minutes", "durationMinutes", 45, provenance)

        self.assertEqual(record.clinical_details.drains, "Redivac")
        self.assertEqual(record.clinical_details.duration_minutes, 45)
        self.assertEqual(provenance, ["drains", "durationMinutes"])

    def test_discharge_procedure_notes(self):
        record = ExtractedCaseData()
        provenance = []
        partial = DischargeSummaryData(procedure_notes="Debridement of wound", surgeon="Jane Smith")

        merge_partial(record, partial, provenance)

        self.assertEqual(record.procedures[0].procedure_name, "See notes")
        self.assertEqual(record.procedures[0].notes, "Debridement of wound")
        self.assertEqual(record.operating_team[0].role, TeamRole.CONSULTANT)
        self.assertEqual(provenance, ["procedures", "operatingTeam"])

    def test_operation_note_details(self):
        record = ExtractedCaseData()
        provenance = []
        partial = OperationNoteData(procedure_name="ORIF", procedure_details="Volar plate applied")

        merge_partial(record, partial, provenance)

        self.assertEqual(record.procedures[0].notes, "Volar plate applied")
        self.assertEqual(provenance, ["procedures"])

    def test_type_defaults_only_for_discharge_summary(self):
        record = ExtractedCaseData()
        provenance = []

        apply_type_defaults(record, DocumentType.OPERATION_NOTE, provenance)
        self.assertIsNone(record.facility)

        apply_type_defaults(record, DocumentType.DISCHARGE_SUMMARY, provenance)
        self.assertEqual(record.facility, "Waikato Hospital")
        self.assertEqual(record.funding_status, FundingStatus.PUBLIC)
        self.assertEqual(provenance, ["facility", "fundingStatus"])

    def test_funding_status_has_no_unknown_value(self):
        with self.assertRaises(ValidationError):
            ExtractedCaseData(funding_status="Unknown")

        result = DocumentPipeline().process("Operation Note\nSurgeon: Dr Jane Smith")
        self.assertIsNone(result.extracted_data.funding_status)
        self.assertNotIn("fundingStatus", result.auto_filled_fields)


if __name__ == "__main__":
    unittest.main()
