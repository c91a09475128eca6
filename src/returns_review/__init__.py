"""Pharmaceutical distributor returns review: synthetic ledger, risk rating, pivots."""

import os

__version__ = "0.1.0"

# Generator version stamped on reports; override to tag a tuned rule set.
GENERATOR_VERSION = os.environ.get("RRV_GENERATOR_VERSION") or "1.0.0"
