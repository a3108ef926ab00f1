"""
Indeed-specific constants and configuration.
"""

BASE_URL = "https://fr.indeed.com"
SEARCH_URL = "https://fr.indeed.com/jobs"

JOBS_PER_PAGE = 10  # Indeed default

# publishedDate -> fromage (days)
FROMAGE = {
    "24h": 1,
    "3d": 3,
    "7d": 7,
    "14d": 14,
    "30d": 30,
}
