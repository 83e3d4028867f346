import logging
import os
from datetime import datetime

from remotehealth.errors import TransientIOError
from remotehealth.services.clinic_service import require_patient
from remotehealth.services.records_service import get_prescriptions, get_vitals


logger = logging.getLogger("reports")

PAGE_BREAK = "\f"


def build_report_lines(patient) -> list[str]:
    lines = [
        f"Patient Report for ID: {patient.id}",
        f"Name: {patient.name}",
        f"Generated: {datetime.utcnow():%Y-%m-%d %H:%M} UTC",
        "",
        "Vital Signs:",
    ]
    vitals = get_vitals(patient.id)
    if vitals:
        lines.extend(str(v) for v in vitals)
    else:
        lines.append("  (none recorded)")

    lines += ["", "Prescriptions:"]
    prescriptions = get_prescriptions(patient.id)
    for p in prescriptions:
        # multi-line entries (recommended tests) keep their own lines
        lines.extend(str(p).splitlines())
    if not prescriptions:
        lines.append("  (none recorded)")
    return lines


def paginate(lines: list[str], lines_per_page: int = 50) -> list[str]:
    """Split into pages, each ending with a 'Page n of m' footer."""
    body = max(1, lines_per_page - 2)
    chunks = [lines[i:i + body] for i in range(0, len(lines), body)] or [[]]
    total = len(chunks)
    return [
        "\n".join(chunk + ["", f"Page {n} of {total}"])
        for n, chunk in enumerate(chunks, start=1)
    ]


def generate_report(patient_id: str, file_path: str, lines_per_page: int = 50) -> str:
    """Write the vitals + prescriptions report to `file_path` and return the path."""
    patient = require_patient(patient_id)
    pages = paginate(build_report_lines(patient), lines_per_page)

    try:
        directory = os.path.dirname(os.path.abspath(file_path))
        os.makedirs(directory, exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as fh:
            fh.write(("\n" + PAGE_BREAK).join(pages) + "\n")
    except OSError as e:
        logger.exception(f"[generate_report] Could not write {file_path}: {e}")
        raise TransientIOError(f"Could not write report to {file_path}") from e

    logger.info(f"[generate_report] Report saved to {file_path} ({len(pages)} pages)")
    return file_path
