"""Service layer exports."""

from .charts import ChartRenderer
from .dexcom_tokens import DexcomTokenService
from .token_cipher import TokenCipherService
from .trends import summarize_readings

__all__ = [
    "ChartRenderer",
    "DexcomTokenService",
    "TokenCipherService",
    "summarize_readings",
]
