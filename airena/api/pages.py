"""
Result pages for the email-originated approval links.

Someone clicking a link in an email gets a small human-readable page
instead of JSON.
"""

from html import escape


def result_page(title: str, heading: str, details: dict[str, str], footer: str, link: str) -> str:
    rows = "".join(
        f"<p><strong>{escape(label)}:</strong> {escape(value)}</p>" for label, value in details.items()
    )
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>{escape(title)} - AIrena</title>"
        "</head><body>"
        f"<h1>{escape(heading)}</h1>"
        f"<div>{rows}</div>"
        f"<p>{escape(footer)}</p>"
        f'<a href="{escape(link)}">Go to Dashboard</a>'
        "</body></html>"
    )


def error_page(message: str) -> str:
    return (
        "<!DOCTYPE html><html><head><title>Error - AIrena</title></head><body>"
        "<h1>Error</h1>"
        f"<p>{escape(message)}</p>"
        "<p>Please try again or contact support if the issue persists.</p>"
        "</body></html>"
    )
