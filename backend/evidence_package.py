"""
Evidence export packages.

Bundles a report for court or tribunal submission as a ZIP archive:

    <report_number>.pdf             rendered report (or _PDF_GENERATION_ERROR.txt)
    photos/NNN_<TYPE>_<caption>.<ext>
    photos/_photo_metadata.json     EXIF, GPS and hash of every packaged photo
    chain_of_custody.txt
    manifest.json                   report details, evidence counts, file listing
"""

import io
import re
import json
import zipfile
import logging
from datetime import datetime
from typing import Callable, Dict, List, Any, Optional

from config import ORGANISATION_NAME, ORGANISATION_EMAIL

logger = logging.getLogger(__name__)

PACKAGE_VERSION = "1.0"
MAX_CAPTION_LENGTH = 30


def photo_filename(index: int, photo: Dict[str, Any]) -> str:
    """e.g. 003_DETAIL_North_apron_flashing.jpeg"""
    extension = (photo.get("mime_type") or "").split("/")[-1] or "jpg"
    caption = ""
    if photo.get("caption"):
        caption = "_" + re.sub(r'[^a-zA-Z0-9]', "_", photo["caption"])[:MAX_CAPTION_LENGTH]
    return f"{index:03d}_{photo.get('photo_type') or 'GENERAL'}{caption}.{extension}"


def _photo_metadata(photo: Dict[str, Any], filename: str) -> Dict[str, Any]:
    return {
        "photo_id": photo.get("id"),
        "filename": filename,
        "captured_at": photo.get("captured_at"),
        "gps_lat": photo.get("gps_lat"),
        "gps_lng": photo.get("gps_lng"),
        "gps_altitude": photo.get("gps_altitude"),
        "camera_make": photo.get("camera_make"),
        "camera_model": photo.get("camera_model"),
        "caption": photo.get("caption"),
        "photo_type": photo.get("photo_type"),
        "original_hash": photo.get("original_hash"),
        "hash_verified": photo.get("hash_verified"),
    }


def chain_of_custody_text(report: Dict[str, Any], upload_events: List[Dict[str, Any]], generated_at: str) -> str:
    inspector = report.get("inspector") or {}
    photos = report.get("photos") or []
    verified = len([p for p in photos if p.get("hash_verified")])

    lines = [
        "CHAIN OF CUSTODY DOCUMENTATION",
        "==============================",
        "",
        f"Report Number: {report.get('report_number')}",
        f"Property: {report.get('property_address')}, {report.get('property_city')}, "
        f"{report.get('property_region')}",
        "",
        "EVIDENCE COLLECTION",
        "-------------------",
        f"Inspector: {inspector.get('name')}",
        f"Inspector LBP Number: {inspector.get('lbp_number') or 'N/A'}",
        f"Qualifications: {inspector.get('qualifications') or 'N/A'}",
        f"Inspection Date: {report.get('inspection_date') or 'N/A'}",
        "",
        "EVIDENCE PROCESSING",
        "-------------------",
        "Every photograph was hashed (SHA-256) on upload and the original bytes",
        "were stored unmodified. EXIF metadata (GPS, timestamps, camera) was",
        "extracted and recorded at upload time.",
        "",
        "EVIDENCE INTEGRITY",
        "------------------",
        f"Total Photos: {len(photos)}",
        f"Total Defects: {len(report.get('defects') or [])}",
        f"Photos with verified hash: {verified} of {len(photos)}",
        "",
        "UPLOAD EVENTS",
        "-------------",
    ]
    if upload_events:
        for event in upload_events:
            detail = f" ({event['details']})" if event.get("details") else ""
            lines.append(f"{event.get('timestamp')}  {event.get('action')}  {event.get('user')}{detail}")
    else:
        lines.append("None recorded")

    lines += [
        "",
        "CERTIFICATION",
        "-------------",
        f"This evidence package was generated on {generated_at}",
        f"Organisation: {ORGANISATION_NAME}",
        f"Contact: {ORGANISATION_EMAIL or 'N/A'}",
        "",
    ]
    return "\n".join(lines)


def build_evidence_package(
    report: Dict[str, Any],
    read_photo: Callable[[Dict[str, Any]], Optional[bytes]],
    pdf_bytes: Optional[bytes] = None,
    pdf_error: Optional[str] = None,
    upload_events: Optional[List[Dict[str, Any]]] = None,
) -> bytes:
    """
    Build the evidence ZIP for a report.

    Args:
        report: Report dictionary including inspector, photos, defects and
                roof elements
        read_photo: Returns the stored bytes of a photo, or None when the
                    object is missing; missing photos are left out
        pdf_bytes: Rendered report PDF
        pdf_error: Why the PDF could not be rendered, written in its place
        upload_events: Photo upload/delete events from the audit log

    Returns:
        ZIP archive bytes
    """
    generated_at = datetime.utcnow().isoformat()
    number = report.get("report_number")
    buffer = io.BytesIO()

    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=6) as archive:
        if pdf_bytes is not None:
            archive.writestr(f"{number}.pdf", pdf_bytes)
        else:
            archive.writestr("_PDF_GENERATION_ERROR.txt",
                             f"The report PDF could not be generated: {pdf_error or 'unknown error'}\n")

        metadata = []
        index = 1
        for photo in report.get("photos") or []:
            data = read_photo(photo)
            if data is None:
                logger.warning(f"Photo {photo.get('id')} missing from storage; left out of {number} package")
                continue
            filename = photo_filename(index, photo)
            archive.writestr(f"photos/{filename}", data)
            metadata.append(_photo_metadata(photo, filename))
            index += 1
        archive.writestr("photos/_photo_metadata.json", json.dumps(metadata, indent=2))

        archive.writestr("chain_of_custody.txt", chain_of_custody_text(report, upload_events or [], generated_at))

        inspector = report.get("inspector") or {}
        manifest = {
            "package_version": PACKAGE_VERSION,
            "generated_at": generated_at,
            "report": {
                "report_number": number,
                "inspection_date": report.get("inspection_date"),
                "property_address": report.get("property_address"),
                "property_city": report.get("property_city"),
                "property_region": report.get("property_region"),
                "inspector": inspector.get("name"),
                "status": report.get("status"),
            },
            "evidence": {
                "photo_count": len(report.get("photos") or []),
                "packaged_photo_count": len(metadata),
                "defect_count": len(report.get("defects") or []),
                "roof_element_count": len(report.get("roof_elements") or []),
            },
            "files": archive.namelist() + ["manifest.json"],
            "generator": {"organisation": ORGANISATION_NAME},
        }
        archive.writestr("manifest.json", json.dumps(manifest, indent=2))

    return buffer.getvalue()
