"""
Login-gate classification for the landing page.

A page is a gate when the server answered 401, or when it has a password
input and the URL or the title also points at a sign-in context. Requiring
both keeps public pages with an embedded login widget from being flagged.
"""
from core.html_utils import extract_title, has_password_input

LOGIN_URL_PATTERNS = [
    "/login", "/signin", "/sign-in", "/sso", "/saml", "/auth/",
    "/idp/", "/oauth", "/cas/", "/adfs/", "/accounts/login",
    "login.microsoftonline.com", ".okta.com", ".auth0.com",
    "ping", "shibboleth", "login.gov",
]

LOGIN_TITLE_PATTERNS = [
    "log in", "login", "sign in", "sign on", "single sign",
    "authentication required", "authenticate", "sso",
]


def detect_login_gate(url: str, html: str, status_code: int) -> bool:
    if status_code == 401:
        return True
    if not has_password_input(html):
        return False

    url_lower = url.lower()
    if any(p in url_lower for p in LOGIN_URL_PATTERNS):
        return True
    title = extract_title(html).lower()
    return any(p in title for p in LOGIN_TITLE_PATTERNS)
