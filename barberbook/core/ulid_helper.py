"""ULID helpers shared by routes."""

# Crockford base32, 26 chars; used to validate path parameters
ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"
