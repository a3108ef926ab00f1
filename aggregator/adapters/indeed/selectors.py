"""
All CSS and data-attribute selectors used by the Indeed adapter.
Centralized here so that selector changes only need to happen in one place.
"""

# Job card container selectors - tried in order during DOM extraction
SERP_CARD_SELECTORS = [
    "#mosaic-provider-jobcards ul li div.slider_item",
    "#mosaic-provider-jobcards ul li",
]

# Job link with job key attribute
JOB_LINK_SELECTOR = "a[data-jk]"

# Job title from span with title attribute
JOB_TITLE_SPAN_SELECTOR = "span[title]"

COMPANY_NAME_SELECTOR = '[data-testid="company-name"]'

LOCATION_SELECTOR = '[data-testid="text-location"]'

EASY_APPLY_SELECTOR = '[data-testid="indeedApply"]'

# Job cards container (for bot detection check)
JOB_CARDS_CONTAINER_SELECTOR = "#mosaic-provider-jobcards"

# --- CAPTCHA / Bot Detection Selectors ---

CAPTCHA_SELECTORS = [
    'iframe[src*="hcaptcha"]',
    'iframe[src*="recaptcha"]',
    'div[class*="captcha"]',
    'div[id*="captcha"]',
    "#px-captcha",
    ".g-recaptcha",
]

# Bot-blocking keywords (checked in page HTML)
BLOCKING_KEYWORDS = [
    "security check",
    "verify you're human",
    "access denied",
    "blocked",
]
