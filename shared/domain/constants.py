NO_TIMEOUT = -1

# Seconds
DNS_INITIAL_DELAY = 5.0
DNS_POLL_INTERVAL = 5.0

VENDOR_PREFIXES = ("redhat-",)
