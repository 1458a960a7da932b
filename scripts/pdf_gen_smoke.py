import sys
import os
from datetime import date

# Add project root to path
sys.path.append(os.getcwd())

from lib.errors import FailureKind
from lib.fallback import synthesize
from lib.models import AnalysisRecord, Issue, Severity
from lib.report_layout import render
from lib.reporting import ReportGenerator, report_file_name


def generate_test_pdf() -> None:
    print("Generating test PDF...")

    # Mock Data
    assessment = synthesize(FailureKind.UNAVAILABLE)
    record = AnalysisRecord.from_assessment(
        assessment.model_copy(
            update={
                "issues": assessment.issues + [
                    Issue(
                        severity=Severity.HIGH,
                        title="Entry without notice",
                        description="The landlord reserves the right to enter the unit at any time.",
                        suggestion="Ask for a 24-hour written notice requirement.",
                        legal_basis="Civil Code 1954",
                        clause_reference="Section 7",
                    )
                ]
            }
        ),
        record_id="smoke-001",
        user_id="smoke-user",
        file_name="Sample Lease.txt",
        location="Oakland, CA",
        analysis_date="2026-01-01T12:00:00+00:00",
        ai_powered=True,
        analysis_version="gemini-enhanced-v1",
    )

    try:
        generated_on = date.today()
        document = render(record, generated_on)
        pdf_bytes = ReportGenerator().generate_pdf(document)

        output_path = report_file_name(record.file_name, generated_on)
        with open(output_path, "wb") as f:
            f.write(pdf_bytes)

        print(f"Success! {document.page_count} page(s) written to {output_path}")

    except Exception as e:
        print(f"Error: {e}")

if __name__ == "__main__":
    generate_test_pdf()
