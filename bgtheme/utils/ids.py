"""
bgtheme Derivation ID Utilities
Generate unique derivation IDs for tracing log lines.
"""
import uuid
from datetime import datetime


def generate_derivation_id(prefix: str = "theme") -> str:
    """
    Generate a unique derivation ID for tracking.

    Returns:
        Unique ID string like ``theme-20250101120000-1a2b3c4d``
    """
    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    short_uuid = str(uuid.uuid4())[:8]
    return f"{prefix}-{timestamp}-{short_uuid}"

