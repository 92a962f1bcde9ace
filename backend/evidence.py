"""
Photo evidence handling: hashing, EXIF extraction, thumbnails and the
chain-of-custody integrity summary for a report.
"""

import hashlib
import logging
from io import BytesIO
from datetime import datetime
from typing import Dict, List, Any, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

# EXIF tag ids
TAG_MAKE = 0x010F
TAG_MODEL = 0x0110
TAG_DATETIME = 0x0132
TAG_EXIF_IFD = 0x8769
TAG_GPS_IFD = 0x8825
TAG_EXPOSURE_TIME = 0x829A
TAG_F_NUMBER = 0x829D
TAG_ISO = 0x8827
TAG_DATETIME_ORIGINAL = 0x9003
TAG_BODY_SERIAL = 0xA431

GPS_LAT_REF = 1
GPS_LAT = 2
GPS_LNG_REF = 3
GPS_LNG = 4
GPS_ALT_REF = 5
GPS_ALT = 6

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

# Integrity score weights (sum to 100)
SCORE_WEIGHTS = {
    "with_hash": 30,
    "hash_verified": 20,
    "with_exif": 20,
    "with_gps": 15,
    "with_timestamp": 15,
}


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _clean_text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    value = str(value).strip().strip("\x00")
    return value or None


def _parse_exif_datetime(value) -> Optional[datetime]:
    text = _clean_text(value)
    if not text:
        return None
    try:
        return datetime.strptime(text, EXIF_DATETIME_FORMAT)
    except ValueError:
        return None


def dms_to_decimal(dms: Tuple, ref: str) -> Optional[float]:
    """
    Convert EXIF degrees/minutes/seconds to signed decimal degrees.

    South and West references give negative values.
    """
    try:
        degrees, minutes, seconds = (float(part) for part in dms)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    value = degrees + minutes / 60 + seconds / 3600
    if _clean_text(ref) in ("S", "W"):
        value = -value
    return round(value, 7)


def _format_exposure(value) -> Optional[str]:
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    if 0 < seconds < 1:
        return f"1/{round(1 / seconds)}"
    return f"{seconds:g}"


def extract_exif(data: bytes) -> Dict[str, Any]:
    """
    Read capture metadata from image bytes.

    Returns:
        Dictionary with any of captured_at, camera_make, camera_model,
        camera_serial, exposure_time, f_number, iso, gps_lat, gps_lng,
        gps_altitude. Empty when the image cannot be read.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            exif = img.getexif()
            exif_ifd = exif.get_ifd(TAG_EXIF_IFD)
            gps_ifd = exif.get_ifd(TAG_GPS_IFD)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not read EXIF metadata: {e}")
        return {}

    metadata: Dict[str, Any] = {}

    captured_at = _parse_exif_datetime(exif_ifd.get(TAG_DATETIME_ORIGINAL)) or \
        _parse_exif_datetime(exif.get(TAG_DATETIME))
    if captured_at:
        metadata["captured_at"] = captured_at

    make = _clean_text(exif.get(TAG_MAKE))
    if make:
        metadata["camera_make"] = make
    model = _clean_text(exif.get(TAG_MODEL))
    if model:
        metadata["camera_model"] = model
    serial = _clean_text(exif_ifd.get(TAG_BODY_SERIAL))
    if serial:
        metadata["camera_serial"] = serial

    exposure = _format_exposure(exif_ifd.get(TAG_EXPOSURE_TIME))
    if exposure:
        metadata["exposure_time"] = exposure
    if exif_ifd.get(TAG_F_NUMBER) is not None:
        metadata["f_number"] = round(float(exif_ifd[TAG_F_NUMBER]), 1)
    iso = exif_ifd.get(TAG_ISO)
    if isinstance(iso, (tuple, list)):
        iso = iso[0] if iso else None
    if iso is not None:
        metadata["iso"] = int(iso)

    if gps_ifd.get(GPS_LAT) and gps_ifd.get(GPS_LNG):
        lat = dms_to_decimal(gps_ifd[GPS_LAT], gps_ifd.get(GPS_LAT_REF, "N"))
        lng = dms_to_decimal(gps_ifd[GPS_LNG], gps_ifd.get(GPS_LNG_REF, "E"))
        if lat is not None and lng is not None:
            metadata["gps_lat"] = lat
            metadata["gps_lng"] = lng
    if gps_ifd.get(GPS_ALT) is not None:
        altitude = float(gps_ifd[GPS_ALT])
        if gps_ifd.get(GPS_ALT_REF) in (1, b"\x01"):
            altitude = -altitude
        metadata["gps_altitude"] = round(altitude, 2)

    return metadata


def make_thumbnail(data: bytes, size: Tuple[int, int] = (300, 300)) -> Optional[bytes]:
    """Return JPEG thumbnail bytes, upright per EXIF orientation, or None if unreadable."""
    try:
        with Image.open(BytesIO(data)) as img:
            thumb = ImageOps.exif_transpose(img).convert("RGB")
            thumb.thumbnail(size)
            buffer = BytesIO()
            thumb.save(buffer, format="JPEG", quality=85)
            return buffer.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not create thumbnail: {e}")
        return None


def process_photo(data: bytes) -> Dict[str, Any]:
    """
    Hash, read and thumbnail an uploaded photo.

    The hash is taken over the bytes exactly as received, before any
    processing, so it can later prove the stored original is unaltered.
    """
    return {
        "original_hash": sha256_hex(data),
        "file_size": len(data),
        "exif": extract_exif(data),
        "thumbnail": make_thumbnail(data),
    }


def _has_exif(photo: Dict[str, Any]) -> bool:
    return bool(
        photo.get("captured_at") or photo.get("camera_make")
        or photo.get("camera_model") or photo.get("exposure_time")
    )


def _has_gps(photo: Dict[str, Any]) -> bool:
    return photo.get("gps_lat") is not None and photo.get("gps_lng") is not None


def _has_camera(photo: Dict[str, Any]) -> bool:
    return bool(photo.get("camera_make") or photo.get("camera_model"))


def integrity_report(
    photos: List[Dict[str, Any]],
    upload_logs: List[Dict[str, Any]],
    users: Dict[str, Dict[str, Any]]
) -> Dict[str, Any]:
    """
    Summarise the evidentiary strength of a report's photos.

    Args:
        photos: Photo dictionaries ordered by upload time
        upload_logs: PHOTO_ADDED / PHOTO_DELETED audit log dictionaries
        users: Map of user id to user dictionary

    Returns:
        Dictionary with summary (including integrity_score 0-100), per-photo
        flags and chain_of_custody
    """
    total = len(photos)
    summary = {
        "total_photos": total,
        "with_hash": len([p for p in photos if p.get("original_hash")]),
        "hash_verified": len([p for p in photos if p.get("hash_verified")]),
        "with_exif": len([p for p in photos if _has_exif(p)]),
        "with_gps": len([p for p in photos if _has_gps(p)]),
        "with_camera": len([p for p in photos if _has_camera(p)]),
        "with_timestamp": len([p for p in photos if p.get("captured_at")]),
        "edited": len([p for p in photos if p.get("is_edited")]),
    }

    score = 0
    if total:
        score = round(sum(summary[key] / total * weight for key, weight in SCORE_WEIGHTS.items()))
    summary["integrity_score"] = score

    devices = []
    for photo in photos:
        if _has_camera(photo):
            device = " ".join(part for part in (photo.get("camera_make"), photo.get("camera_model")) if part)
            if device not in devices:
                devices.append(device)

    events = []
    for log in upload_logs:
        details = log.get("details") or {}
        user = users.get(log.get("user_id")) or {}
        events.append({
            "action": log.get("action"),
            "timestamp": log.get("created_at"),
            "user": user.get("name") or "Unknown",
            "details": str(details["filename"]) if details.get("filename") else None,
        })

    return {
        "summary": summary,
        "photos": [
            {
                "id": p.get("id"),
                "filename": p.get("original_filename"),
                "has_hash": bool(p.get("original_hash")),
                "hash_verified": bool(p.get("hash_verified")),
                "has_exif": _has_exif(p),
                "has_gps": _has_gps(p),
                "has_camera": _has_camera(p),
                "has_timestamp": bool(p.get("captured_at")),
                "is_edited": bool(p.get("is_edited")),
                "captured_at": p.get("captured_at"),
                "uploaded_at": p.get("uploaded_at"),
                "camera_make": p.get("camera_make"),
                "camera_model": p.get("camera_model"),
                "gps_lat": p.get("gps_lat"),
                "gps_lng": p.get("gps_lng"),
            }
            for p in photos
        ],
        "chain_of_custody": {
            "first_upload": photos[0].get("uploaded_at") if photos else None,
            "last_upload": photos[-1].get("uploaded_at") if photos else None,
            "unique_devices": devices,
            "upload_events": events,
        },
    }
