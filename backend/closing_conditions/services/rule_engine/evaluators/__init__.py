"""Rule evaluators for the two catalog text columns."""

from .logic_expression import LogicExpressionEvaluator, has_technical_signature
from .rules_text import RULES_TEXT_PREDICATES, RulesTextEvaluator

__all__ = [
    "LogicExpressionEvaluator",
    "RULES_TEXT_PREDICATES",
    "RulesTextEvaluator",
    "has_technical_signature",
]
