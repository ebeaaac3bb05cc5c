import secrets


def normalize_email(email: str) -> str:
    """Return a normalized email address for comparison and storage.

    Gmail addresses are canonicalized so aliases like "user+tag@googlemail.com"
    and "u.s.e.r@gmail.com" resolve to the same account. This prevents a
    second user row when someone invited by email later signs in with Google.
    """

    email = email.strip().lower()
    local, _, domain = email.partition("@")

    if domain in {"gmail.com", "googlemail.com"}:
        domain = "gmail.com"
        local = local.split("+", 1)[0].replace(".", "")

    return f"{local}@{domain}"


def generate_invitation_token() -> str:
    return secrets.token_urlsafe(32)
