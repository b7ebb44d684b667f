"""
Scope classification for scope 1/2 activity records.

Value-chain records never pass through here: they are scope 3 by
construction.
"""

from carbonledger.core.models import Scope

SCOPE2_KEYWORDS = ("electricity", "grid")


def classify_scope(activity_type: str) -> Scope:
    """Purchased electricity is scope 2; every other activity is scope 1."""
    activity = (activity_type or "").casefold()
    if any(keyword in activity for keyword in SCOPE2_KEYWORDS):
        return Scope.SCOPE2
    return Scope.SCOPE1
