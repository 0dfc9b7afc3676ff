import re

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email) -> str:
    return (email or "").strip().lower()


def normalize_attendees(attendees):
    """
    Drops blank entries, lower-cases and de-duplicates (first occurrence wins).
    Returns (emails, errors).
    """
    emails, errors, seen = [], [], set()
    for index, raw in enumerate(attendees or []):
        if not isinstance(raw, str) or not raw.strip():
            continue
        email = normalize_email(raw)
        if not EMAIL_RE.match(email):
            errors.append(f"Invalid email format for attendee {index + 1}: {raw}")
            continue
        if email not in seen:
            seen.add(email)
            emails.append(email)
    return emails, errors
