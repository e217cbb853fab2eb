"""HealthBridge: consent-gated fitness metric ingestion."""

__version__ = "0.1.0"
