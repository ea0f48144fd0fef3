"""Static lookup tables shared by the SQL builders."""

DEFAULT_PAGE_SIZE = 20

EVENT_TABLE = "website_event"
SESSION_TABLE = "session"

# Operator codes as they appear in encoded filter values ("neq.chrome")
OPERATOR_CODES = {
    "equals": "eq",
    "notEquals": "neq",
    "set": "s",
    "notSet": "ns",
    "contains": "c",
    "doesNotContain": "dnc",
    "true": "t",
    "false": "f",
    "greaterThan": "gt",
    "lessThan": "lt",
    "greaterThanEquals": "gte",
    "lessThanEquals": "lte",
    "before": "bf",
    "after": "af",
}

FILTER_COLUMNS = {
    "path": "url_path",
    "entry": "url_path",
    "exit": "url_path",
    "referrer": "referrer_domain",
    "domain": "referrer_domain",
    "hostname": "hostname",
    "title": "page_title",
    "query": "url_query",
    "os": "os",
    "browser": "browser",
    "device": "device",
    "screen": "screen",
    "country": "country",
    "region": "region",
    "city": "city",
    "language": "language",
    "event": "event_name",
    "tag": "tag",
    "utmSource": "utm_source",
    "utmMedium": "utm_medium",
    "utmCampaign": "utm_campaign",
    "utmContent": "utm_content",
    "utmTerm": "utm_term",
}

SESSION_COLUMNS = [
    "browser",
    "os",
    "device",
    "screen",
    "language",
    "country",
    "region",
    "city",
]

COHORT_PREFIX = "cohort_"
