from dataclasses import dataclass, field
from typing import Dict

@dataclass(frozen=True)
class PageContext:
    """The fetched landing page, shared read-only by every tech-stack analyzer."""
    url: str
    status_code: int
    headers: Dict[str, str] # lower-cased names
    html: str
    css: str = "" # concatenated external stylesheets (first few only)
    cookies: str = "" # raw Set-Cookie header values joined with newlines

    @property
    def html_lower(self) -> str:
        return self.html.lower()
