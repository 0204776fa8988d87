from typing import List
import logging
from core.context import PageContext
from models.detection import DetectedTechnology
from models.technology import Technology
from analyzers.signals import any_match

logger = logging.getLogger(__name__)


class TechnologiesAnalyzer:
    """Generic front-end libraries and frameworks (technologies.yaml)."""

    def __init__(self, rules: List[Technology]):
        self.rules = rules

    async def analyze(self, context: PageContext) -> List[DetectedTechnology]:
        detections = [
            DetectedTechnology(name=tech.name, category=tech.category)
            for tech in self.rules
            if any_match(tech, context)
        ]
        logger.debug(f"TechnologiesAnalyzer: {len(detections)} detections")
        return detections


class AnalyticsAnalyzer:
    """Analytics and marketing script signatures (analytics.yaml)."""

    def __init__(self, rules: List[Technology]):
        self.rules = rules

    async def analyze(self, context: PageContext) -> List[str]:
        tools = [tech.name for tech in self.rules if any_match(tech, context)]
        logger.debug(f"AnalyticsAnalyzer: {', '.join(tools) or 'none'}")
        return tools
