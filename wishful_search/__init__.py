# wishful-search - natural language search over your objects
"""
wishful-search - turn plain-text questions into SQL over your own objects.
"""

__version__ = "0.1.0"

from .adapters import configure_model, get_openai_adapter, get_template_adapter
from .agent import run_agent
from .analytics import AnalyticsEngine, detect_column_type, paginate_frame
from .engine import FewShotQuestion, SearchEngine
from .errors import (
    AnalysisUnparseable,
    ModelUnavailable,
    NoObjectRetentionConfigured,
    NoResponseFromModel,
    QueryExecutionFailed,
    SchemaInvalid,
    SearchInProgress,
    WishfulSearchError,
)
from .models import (
    CharLimitedEnumSettings,
    Column,
    DBColumn,
    ExhaustiveEnumSettings,
    ForeignKey,
    LLMConfig,
    MinMaxEnumSettings,
    QQTurn,
    Table,
)

__all__ = [
    "__version__",
    "SearchEngine",
    "AnalyticsEngine",
    "FewShotQuestion",
    "run_agent",
    "configure_model",
    "get_openai_adapter",
    "get_template_adapter",
    "detect_column_type",
    "paginate_frame",
    "Column",
    "Table",
    "DBColumn",
    "ForeignKey",
    "LLMConfig",
    "QQTurn",
    "ExhaustiveEnumSettings",
    "MinMaxEnumSettings",
    "CharLimitedEnumSettings",
    "WishfulSearchError",
    "SchemaInvalid",
    "ModelUnavailable",
    "NoResponseFromModel",
    "QueryExecutionFailed",
    "AnalysisUnparseable",
    "NoObjectRetentionConfigured",
    "SearchInProgress",
]
