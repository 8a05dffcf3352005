"""
Notification messages.

Builds the subject and HTML body of every email the domain sends.
Values are HTML-escaped; the markup is intentionally plain.
"""

from datetime import datetime
from html import escape

from .ports import EmailMessage, Event, Identity, Recipient


def _page(heading: str, *paragraphs: str) -> str:
    body = "".join(f"<p>{paragraph}</p>" for paragraph in paragraphs)
    return f"<html><body><h2>{escape(heading)}</h2>{body}<p>The AIrena Team</p></body></html>"


def _format_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M %Z").strip()


def otc_message(to: str, code: str, ttl_minutes: int) -> EmailMessage:
    return EmailMessage(
        to=to,
        subject="Verify Your Email - AIrena",
        html=_page(
            "Email Verification Required",
            f"Your verification code is <strong>{escape(code)}</strong>.",
            f"This code expires in {ttl_minutes} minutes.",
            "Never share this code with anyone. If you didn't request it, ignore this email.",
        ),
    )


def host_request_message(
    to: str, host: Identity, approve_url: str, reject_url: str
) -> EmailMessage:
    requested_at = _format_time(host.host_requested_at) if host.host_requested_at else "just now"
    return EmailMessage(
        to=to,
        subject="New Host Approval Request - AIrena",
        html=_page(
            "New Host Approval Request",
            f"<strong>Name:</strong> {escape(host.name)}<br>"
            f"<strong>Email:</strong> {escape(host.email)}<br>"
            f"<strong>Requested At:</strong> {escape(requested_at)}",
            f'<a href="{escape(approve_url)}">APPROVE</a> | <a href="{escape(reject_url)}">REJECT</a>',
            "You can also review this request from the admin dashboard.",
        ),
    )


def host_approved_message(host: Identity) -> EmailMessage:
    approved_at = _format_time(host.host_approved_at) if host.host_approved_at else "just now"
    return EmailMessage(
        to=host.email,
        subject="Host Account Approved - Welcome to AIrena!",
        html=_page(
            "Host Account Approved",
            f"Hi <strong>{escape(host.name)}</strong>,",
            "Your host account has been approved. Verify your email with the code "
            "we just sent you, then sign in to start creating hackathons.",
            f"<strong>Approved At:</strong> {escape(approved_at)}",
        ),
    )


def host_rejected_message(host: Identity, rejected_at: datetime) -> EmailMessage:
    return EmailMessage(
        to=host.email,
        subject="Host Account Request Update - AIrena",
        html=_page(
            "Host Account Request Update",
            f"Hi <strong>{escape(host.name)}</strong>,",
            "After careful review, we are unable to approve your host account request. "
            "Your registration has been removed; you are welcome to register again.",
            f"<strong>Reviewed At:</strong> {escape(_format_time(rejected_at))}",
        ),
    )


def daily_reminder_message(
    recipient: Recipient, event: Event, days_left: int, dashboard_url: str
) -> EmailMessage:
    return EmailMessage(
        to=recipient.email,
        subject=f"{days_left} days left to submit - {event.title}",
        html=_page(
            "Don't forget to submit!",
            f"Hi <strong>{escape(recipient.name)}</strong>,",
            f"There are only <strong>{days_left} days left</strong> to submit your project "
            f"for <strong>{escape(event.title)}</strong>.",
            f"<strong>Organizer:</strong> {escape(event.organizer_name)}<br>"
            f"<strong>Submission Deadline:</strong> {escape(_format_time(event.submission_deadline))}",
            f'<a href="{escape(dashboard_url)}">Submit Your Project</a>',
        ),
    )


def final_day_reminder_message(
    recipient: Recipient, event: Event, dashboard_url: str
) -> EmailMessage:
    return EmailMessage(
        to=recipient.email,
        subject=f"Last day to submit - {event.title}",
        html=_page(
            "Today is the final day!",
            f"Hi <strong>{escape(recipient.name)}</strong>,",
            f"Today is the <strong>final day</strong> to submit your project for "
            f"<strong>{escape(event.title)}</strong>.",
            f"<strong>Final Deadline:</strong> {escape(_format_time(event.submission_deadline))}",
            f'<a href="{escape(dashboard_url)}">Submit Now</a>',
        ),
    )


def one_hour_reminder_message(
    recipient: Recipient, event: Event, dashboard_url: str
) -> EmailMessage:
    return EmailMessage(
        to=recipient.email,
        subject=f"1 hour left! Submit now - {event.title}",
        html=_page(
            "Just 1 hour remaining!",
            f"Hi <strong>{escape(recipient.name)}</strong>,",
            f"Submissions for <strong>{escape(event.title)}</strong> close in one hour. "
            "No late submissions will be accepted.",
            f'<a href="{escape(dashboard_url)}">Submit Your Project Now</a>',
        ),
    )
