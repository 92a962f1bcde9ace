"""
Outbound email.

Workflow notifications are sent on a background thread and never fail the
request that triggered them. Complaint submission to the Building
Practitioners Board is sent synchronously so the caller can record the
message id.
"""

import logging
import smtplib
import threading
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.mime.application import MIMEApplication
from email.utils import make_msgid

from config import (
    EMAIL_ENABLED,
    SMTP_HOST,
    SMTP_PORT,
    SMTP_USER,
    SMTP_PASSWORD,
    EMAIL_FROM,
    APP_BASE_URL,
    REVIEWER_NOTIFICATION_EMAIL,
    ORGANISATION_NAME,
    BPB_NAME,
    BPB_COMPLAINTS_EMAIL,
)

logger = logging.getLogger(__name__)


def send_email(to, subject: str, body: str, attachments: list = None, cc: list = None) -> str:
    """
    Send a plain-text email.

    Args:
        to: Recipient address or list of addresses
        subject: Subject line
        body: Plain-text body
        attachments: Optional list of (filename, bytes, mime subtype) tuples
        cc: Optional list of CC addresses

    Returns:
        Message id (a simulated id when email is disabled)
    """
    recipients = [to] if isinstance(to, str) else [r for r in to if r]
    cc = [c for c in (cc or []) if c]

    if not EMAIL_ENABLED:
        message_id = f"sim_{int(datetime.utcnow().timestamp())}_{subject[:20].replace(' ', '_')}"
        logger.info(f"Email disabled; would send '{subject}' to {', '.join(recipients)}")
        return message_id

    msg = MIMEMultipart()
    msg['From'] = EMAIL_FROM
    msg['To'] = ', '.join(recipients)
    if cc:
        msg['Cc'] = ', '.join(cc)
    msg['Subject'] = subject
    msg['Message-ID'] = make_msgid()
    msg.attach(MIMEText(body, 'plain'))

    for filename, content, subtype in attachments or []:
        part = MIMEApplication(content, _subtype=subtype)
        part.add_header('Content-Disposition', f'attachment; filename="{filename}"')
        msg.attach(part)

    with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as server:
        if SMTP_USER:
            server.starttls()
            server.login(SMTP_USER, SMTP_PASSWORD)
        server.send_message(msg, to_addrs=recipients + cc)

    logger.info(f"Sent '{subject}' to {', '.join(recipients)}")
    return msg['Message-ID']


def _send_quietly(to, subject, body):
    try:
        send_email(to, subject, body)
    except Exception as e:
        logger.error(f"Failed to send email '{subject}': {e}", exc_info=True)


def send_async(to, subject: str, body: str) -> None:
    """Send an email on a daemon thread; failures are logged only."""
    if not to:
        logger.info(f"No recipient for '{subject}'; skipping")
        return
    thread = threading.Thread(target=_send_quietly, args=(to, subject, body), daemon=True)
    thread.start()


def _report_link(report: dict) -> str:
    return f"{APP_BASE_URL}/reports/{report['id']}"


# =============================================================================
# TEMPLATES
# =============================================================================

def notify_report_submitted(report: dict, inspector: dict) -> None:
    subject = f"Report {report['report_number']} submitted for review"
    body = (
        f"{inspector.get('name')} has submitted report {report['report_number']} for review.\n\n"
        f"Property: {report.get('property_address')}, {report.get('property_city')}\n"
        f"Inspection type: {report.get('inspection_type')}\n"
        f"Revision round: {report.get('revision_round')}\n\n"
        f"Review it at {APP_BASE_URL}/admin/reviews/{report['id']}\n"
    )
    send_async(REVIEWER_NOTIFICATION_EMAIL, subject, body)


def notify_report_approved(report: dict, inspector: dict, reviewer: dict, comments: str = None) -> None:
    subject = f"Report {report['report_number']} approved"
    body = (
        f"Hi {inspector.get('name')},\n\n"
        f"Your report {report['report_number']} has been approved by {reviewer.get('name')}.\n"
        f"Status: {report.get('status')}\n"
    )
    if comments:
        body += f"\nReviewer comments:\n{comments}\n"
    body += f"\nView the report at {_report_link(report)}\n"
    send_async(inspector.get('email'), subject, body)


def notify_revision_required(report: dict, inspector: dict, reviewer: dict, reason: str,
                             comment_counts: dict) -> None:
    subject = f"Revision required: report {report['report_number']}"
    counts = ", ".join(f"{count} {severity.lower()}" for severity, count in comment_counts.items() if count)
    body = (
        f"Hi {inspector.get('name')},\n\n"
        f"{reviewer.get('name')} has returned report {report['report_number']} for revision.\n\n"
        f"Reason:\n{reason}\n\n"
        f"Unresolved comments: {counts or 'none'}\n\n"
        f"Update the report at {_report_link(report)}\n"
    )
    send_async(inspector.get('email'), subject, body)


def notify_inspection_request(assignment: dict, inspector: dict, reference: str) -> None:
    """Confirmation to the client and a heads-up to the selected inspector."""
    client_body = (
        f"Hi {assignment['client_name']},\n\n"
        f"Thank you for your inspection request ({reference}).\n"
        f"Property: {assignment['property_address']}\n"
        f"Assigned inspector: {inspector.get('name')}\n\n"
        f"The inspector will contact you to arrange a time.\n\n"
        f"{ORGANISATION_NAME}\n"
    )
    send_async(assignment['client_email'], f"Inspection request received - {reference}", client_body)

    inspector_body = (
        f"Hi {inspector.get('name')},\n\n"
        f"A new {assignment.get('urgency', 'STANDARD').lower()} inspection request ({reference}) "
        f"has been assigned to you.\n"
        f"Client: {assignment['client_name']} <{assignment['client_email']}>\n"
        f"Property: {assignment['property_address']}\n\n"
        f"View it at {APP_BASE_URL}/assignments\n"
    )
    send_async(inspector.get('email'), f"New inspection request - {reference}", inspector_body)


def complaint_submission_email(complaint: dict, pdf_bytes: bytes, admin: dict) -> str:
    """
    Send a complaint to the Building Practitioners Board.

    Returns:
        Message id of the sent email
    """
    subject = f"LBP Complaint - {complaint['complaint_number']} - {complaint['subject_lbp_name']}"
    grounds = "\n".join(f"  - {g.replace('_', ' ')}" for g in complaint.get('grounds_for_discipline') or [])
    body = (
        f"Dear {BPB_NAME},\n\n"
        f"Please find attached a complaint lodged by {ORGANISATION_NAME} regarding "
        f"Licensed Building Practitioner {complaint['subject_lbp_name']} "
        f"({complaint['subject_lbp_number']}).\n\n"
        f"Complaint number: {complaint['complaint_number']}\n"
        f"Work address: {complaint.get('work_address')}\n\n"
        f"Grounds for discipline:\n{grounds}\n\n"
        f"Evidence summary:\n{complaint.get('evidence_summary')}\n\n"
        f"Submitted by {admin.get('name')} on behalf of {ORGANISATION_NAME}.\n"
    )
    return send_email(
        BPB_COMPLAINTS_EMAIL,
        subject,
        body,
        attachments=[(f"{complaint['complaint_number']}_Complaint.pdf", pdf_bytes, 'pdf')],
        cc=[admin.get('email')],
    )
