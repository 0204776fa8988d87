from dataclasses import dataclass, field
from typing import List, Optional

@dataclass(frozen=True)
class EvidenceRule:
    """One signal in a fingerprint rule table."""
    type: str # e.g., 'html_regex', 'header_substring', 'ns_substring'
    name: Optional[str] = None # Header name for header-based signals
    value: Optional[str] = None # Literal substring to look for
    pattern: Optional[str] = None # Regex pattern (case-insensitive)
    weight: int = 0 # Score contributed when the signal fires (CMS table only)

@dataclass(frozen=True)
class Technology:
    """A named entry (CMS, library, analytics tool, hosting provider) and its signals."""
    name: str
    category: str
    evidence_rules: List[EvidenceRule] = field(default_factory=list)
