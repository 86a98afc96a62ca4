"""Click command groups registered by ``lit.cli``."""
