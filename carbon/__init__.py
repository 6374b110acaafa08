from .errors import CarbonEngineError, ConfigurationError, IngestionError, ValidationError
from .models import (
    SCOPES, Transaction, EnrichedTransaction, ScopeTotals, Rejection, MetricsReport,
)
from .factors import FactorTable, DEFAULT_FACTORS, DEFAULT_FALLBACK_FACTOR
from .config import EngineConfig, RefundPolicy, load_config
