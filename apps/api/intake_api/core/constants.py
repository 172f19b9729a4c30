"""Application constants."""

import re

# Wire protocol
DEFAULT_ALLOWED_VERSIONS = frozenset({"loggie.intake.v1"})
DEFAULT_MAX_BODY_BYTES = 65536  # 64KB

# Submission IDs are 64-char lowercase hex content hashes (compared after lowercasing)
INTAKE_ID_PATTERN = re.compile(r"[a-f0-9]{64}")

# Metadata clamps (UTF-8 bytes)
MAX_USER_AGENT_BYTES = 512
MAX_REFERRER_BYTES = 1024
MAX_NOTE_BYTES = 4096

# Headers
HMAC_HEADER = "X-Intake-HMAC"

# Admin listing
DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 200

# CORS preflight cache (seconds)
PREFLIGHT_MAX_AGE = 86400
