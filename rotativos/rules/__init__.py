from .catalog import RuleCatalog, build_default_catalog
from .engine import (
    ALERT_RULE_ID,
    CUPO_RULE_ID,
    PROMOTION_EXEMPT_RULES,
    WAITING_LIST_RULE_ID,
    ValidationEngine,
    merge_suggestion,
)
from .types import (
    EventData,
    RuleConfigValue,
    SeasonData,
    SuggestedAction,
    UserBalanceSnapshot,
    ValidationContext,
    ValidationResult,
    ValidationSummary,
)
