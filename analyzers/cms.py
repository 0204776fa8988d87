from typing import Dict, List, Optional
import logging
from core.context import PageContext
from models.detection import CmsMatch
from models.technology import Technology
from analyzers.signals import score

logger = logging.getLogger(__name__)

DEFAULT_CMS_THRESHOLD = 40


class CmsAnalyzer:
    """Weighted CMS scoring over the cms.yaml rule table."""

    def __init__(self, rules: List[Technology], threshold: int = DEFAULT_CMS_THRESHOLD):
        self.rules = rules
        self.threshold = threshold

    async def analyze(self, context: PageContext) -> CmsMatch:
        scores: Dict[str, int] = {}
        for tech in self.rules:
            scores[tech.name] = score(tech, context)

        best_name: Optional[str] = None
        best_score = 0
        # Strictly greater: on a tie the earlier table entry keeps the lead
        for name, value in scores.items():
            if value > best_score:
                best_name, best_score = name, value

        cms = best_name if best_score >= self.threshold else None
        logger.debug(f"CmsAnalyzer: best={best_name} ({best_score}), threshold={self.threshold} -> {cms}")
        return CmsMatch(cms=cms, scores=scores)
