"""
Small helper functions used across the Indeed adapter.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def extract_json_from_script(html: str, pattern: str) -> Optional[Dict[str, Any]]:
    """
    Extract JSON from script tags using regex pattern.
    Returns None if extraction or parsing fails.
    """
    try:
        match = re.search(pattern, html, re.DOTALL)
        if match:
            return json.loads(match.group(1))
    except (json.JSONDecodeError, AttributeError) as e:
        logger.warning(f"Failed to parse JSON from script: {e}")
    return None
