import os
import logging
import yaml
from dataclasses import dataclass, field
from typing import List
from models.technology import Technology, EvidenceRule

logger = logging.getLogger(__name__)

RULES_DIR = os.path.dirname(os.path.abspath(__file__))

def load_rules(filename: str, rules_dir: str = RULES_DIR) -> List[Technology]:
    """
    Loads one ordered rule table from a .yaml file.

    Each entry is {name, category, evidence: [{type, name, value, pattern, weight}]}.
    File order is preserved; several tables rely on it (first match wins).
    """
    filepath = os.path.join(rules_dir, filename)
    with open(filepath, "r") as f:
        rules_data = yaml.safe_load(f)
    if not rules_data:
        return []

    technologies: List[Technology] = []
    for rule_data in rules_data:
        # Basic validation
        if not all(k in rule_data for k in ["name", "category", "evidence"]):
            logger.warning(f"Skipping invalid rule in {filename}: {rule_data}")
            continue

        evidence_rules = []
        for evidence_item in rule_data["evidence"]:
            evidence_rules.append(
                EvidenceRule(
                    type=evidence_item.get("type"),
                    name=evidence_item.get("name"),
                    pattern=evidence_item.get("pattern"),
                    value=evidence_item.get("value"),
                    weight=int(evidence_item.get("weight", 0)),
                )
            )

        technologies.append(
            Technology(
                name=rule_data["name"],
                category=rule_data["category"],
                evidence_rules=evidence_rules,
            )
        )
    logger.debug(f"Loaded {len(technologies)} entries from {filename}")
    return technologies


@dataclass(frozen=True)
class RuleSet:
    """All fingerprint tables used by a scan."""
    cms: List[Technology] = field(default_factory=list)
    technologies: List[Technology] = field(default_factory=list)
    analytics: List[Technology] = field(default_factory=list)
    hosting: List[Technology] = field(default_factory=list)


def load_rule_set(rules_dir: str = RULES_DIR) -> RuleSet:
    return RuleSet(
        cms=load_rules("cms.yaml", rules_dir),
        technologies=load_rules("technologies.yaml", rules_dir),
        analytics=load_rules("analytics.yaml", rules_dir),
        hosting=load_rules("hosting.yaml", rules_dir),
    )
