from shared.domain.constants import VENDOR_PREFIXES


def normalize_framework(framework: str) -> str:
    """Strip a known vendor prefix: redhat-jbossas-7 -> jbossas-7"""
    for prefix in VENDOR_PREFIXES:
        if framework.startswith(prefix):
            return framework[len(prefix) :]
    return framework


def sanitize_framework(framework: str) -> str:
    """jbossas-7 -> jbossas7, redhat-php-5.3 -> php53"""
    return normalize_framework(framework).replace(".", "").replace("-", "")


def hostname_from_url(url: str) -> str:
    """
    Derive the externally reachable hostname from an application URL.

    http://builder-domain.example.com/ -> builder-domain.example.com
    """
    if "//" in url:
        url = url[url.index("//") + 2 :]
    return url.replace("/", "")
