"""
Knowledge module: per-topic progression, prerequisite catalog and gap analysis.

Components:
- progression: KnowledgeStateTracker and the tier advancement rules
- complexity: Heuristic content complexity scoring
- prerequisites: Versioned, acyclic topic prerequisite catalog
- gap_analyzer: Gap rules, ranking and learning-path ordering
"""

from src.knowledge.complexity import ComplexityAnalysis, ContentComplexityAnalyzer
from src.knowledge.gap_analyzer import (
    DEFAULT_GAP_RULES,
    GapAnalyzer,
    GapRule,
    TopicSuggestion,
    learning_path,
)
from src.knowledge.prerequisites import PrerequisiteCatalog
from src.knowledge.progression import (
    DepthRecommendation,
    KnowledgeOverview,
    KnowledgeSnapshot,
    KnowledgeStateTracker,
    ProgressionRecommendation,
    ProgressionThresholds,
    analyze_progression_readiness,
    apply_interaction,
    progression_score,
)

__all__ = [
    # Progression
    "KnowledgeStateTracker",
    "KnowledgeSnapshot",
    "KnowledgeOverview",
    "DepthRecommendation",
    "ProgressionRecommendation",
    "ProgressionThresholds",
    "analyze_progression_readiness",
    "apply_interaction",
    "progression_score",
    # Complexity
    "ContentComplexityAnalyzer",
    "ComplexityAnalysis",
    # Gaps
    "PrerequisiteCatalog",
    "GapAnalyzer",
    "GapRule",
    "DEFAULT_GAP_RULES",
    "TopicSuggestion",
    "learning_path",
]
