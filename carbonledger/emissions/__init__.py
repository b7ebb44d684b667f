"""
Emission factor tables, factor resolution and scope classification.
"""

from carbonledger.emissions.factors import DEFAULT_FACTORS, EmissionFactorTable
from carbonledger.emissions.resolver import (
    FactorResolution,
    FactorResolver,
    SiteContext,
    ValueChainResolver,
)
from carbonledger.emissions.scope import classify_scope

__all__ = [
    "DEFAULT_FACTORS",
    "EmissionFactorTable",
    "FactorResolution",
    "FactorResolver",
    "SiteContext",
    "ValueChainResolver",
    "classify_scope",
]
