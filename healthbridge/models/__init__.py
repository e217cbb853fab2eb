"""
Database Models

Feature models live next to their feature (features/<name>/models.py).
They are imported lazily here to avoid circular imports: call
`load_all_models()` before touching `Base.metadata`.
"""

from healthbridge.models.base import Base


def load_all_models() -> None:
    """Import every feature model so it is registered on Base.metadata."""
    from healthbridge.features.google_fit import models as _google_fit  # noqa: F401
    from healthbridge.features.consent import models as _consent  # noqa: F401
    from healthbridge.features.metrics import models as _metrics  # noqa: F401
    from healthbridge.features.governance import models as _governance  # noqa: F401


__all__ = ["Base", "load_all_models"]
